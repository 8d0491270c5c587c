# Rev 0.2.0
# projectZ – demo data for first run and the "Add random" action
from __future__ import annotations
import random
from datetime import datetime, timedelta
from typing import Optional

from .entities import PRIORITY_RANGE, Project

NAME_POOL = (
    "Build a house", "Write a book", "Plant a garden", "Learn the cello",
    "Renovate the kitchen", "Run a marathon", "Start a podcast", "Paint the fence",
    "Open a bakery", "Restore a sailboat", "Knit a sweater", "Climb Mont Blanc",
    "Launch a newsletter", "Brew cider", "Build a treehouse", "Learn Japanese",
)

DUE_DATE_SPREAD = timedelta(days=30)


def make_random_project(rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> Project:
    rng = rng or random.Random()
    now = (now or datetime.now()).replace(microsecond=0)
    spread = int(DUE_DATE_SPREAD.total_seconds())
    return Project(
        id=None,
        name=rng.choice(NAME_POOL),
        due_date=now + timedelta(seconds=rng.randint(-spread, spread)),
        priority=rng.choice(PRIORITY_RANGE),
    )
