# Rev 0.2.0

# projectz/main.py  (Rev 0.2.0)
import logging
import sys

from PySide6.QtCore import QCoreApplication
from PySide6.QtWidgets import QApplication, QMessageBox

from projectz.app_context import AppContext
from projectz.models.entities import ProjectOrdering
from projectz.repositories.errors import MigrationError
from projectz.ui.main_window import MainWindow
from projectz.utils.config import StoreConfig, load_settings, save_settings
from projectz.utils.logging_setup import setup_logging
from projectz.utils.paths import ensure_dirs
from projectz.viewmodels.project_list_viewmodel import ProjectListViewModel

log = logging.getLogger("projectz")


def main():
    app = QApplication(sys.argv)
    QCoreApplication.setOrganizationName("projectz")
    QCoreApplication.setApplicationName("projectZ")

    ensure_dirs()
    logfile = setup_logging()
    settings = load_settings()
    config = StoreConfig.from_settings(settings)

    # --- DI wiring ---
    try:
        ctx = AppContext.create(config)
    except MigrationError as e:
        log.critical("Database setup failed for %s: %s", config.path, e)
        QMessageBox.critical(None, "projectZ", f"Cannot open the project database:\n{e}")
        return 1
    ctx.seed_demo_data()

    vm = ProjectListViewModel(
        ctx.projects,
        ordering=ProjectOrdering.parse(settings["list"].get("ordering")),
        executor=ctx.executor,
    )

    # --- UI ---
    geometry = settings["main_window"]
    win = MainWindow(viewmodel=vm, width=int(geometry["width"]), height=int(geometry["height"]))
    win.show()
    vm.observe_projects()
    log.info("projectZ started; db=%s log=%s", config.path, logfile)

    code = app.exec()

    vm.stop()
    ctx.shutdown()
    settings["list"]["ordering"] = vm.ordering.value
    settings["main_window"].update(width=win.width(), height=win.height())
    save_settings(settings)
    return code


if __name__ == "__main__":
    sys.exit(main())
