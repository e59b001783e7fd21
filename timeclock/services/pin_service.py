import logging
import random
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from timeclock.models import Employee

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100


class PinGenerationError(Exception):
    pass


def generate_unique_pin(
    used_pins: Iterable[str],
    max_attempts: int = MAX_ATTEMPTS,
    randint: Optional[Callable[[int, int], int]] = None,
) -> str:
    """Draw random 4-digit PINs until one is not in ``used_pins``."""
    used = {str(p) for p in used_pins}
    draw = randint or random.randint
    for _ in range(max_attempts):
        pin = str(draw(1000, 9999))
        if pin not in used:
            return pin
    logger.warning("No free PIN after %d attempts (%d PINs in use)", max_attempts, len(used))
    raise PinGenerationError("Could not generate unique PIN. Try again.")


def used_pins(db: Session) -> set:
    return {pin for (pin,) in db.query(Employee.pin).all() if pin}
