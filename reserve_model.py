"""Drug records and the shared, lock-guarded reserve store.

The store is loaded once from a JSON data file, mutated in place under its
lock, and written back atomically after every successful mutation. Rationals
are persisted as ``[numerator, denominator]`` integer pairs.
"""
import copy
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from fractions import Fraction
from threading import Lock
from typing import Any, Dict, Iterator, List, Optional

from reserve_errors import IndexOutOfRange, PersistenceError, ReserveError
from reserve_fractions import ZERO, rational_from_json, rational_to_json

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


@dataclass
class DrugComponent:
    generic_name: str
    amount: Fraction  # strength per unit, e.g. 5 (mg)
    unit: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DrugComponent":
        return cls(
            generic_name=record["generic_name"],
            amount=rational_from_json(record["amount"]),
            unit=record["unit"],
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "generic_name": self.generic_name,
            "amount": rational_to_json(self.amount),
            "unit": self.unit,
        }


@dataclass
class Drug:
    """One medication: identity, packaging, dosage schedule and current stock.

    ``remaining`` is allowed to go negative; a negative value is the number of
    units already missing after the supply ran out.
    """
    trade_name: str
    remaining: Fraction = ZERO
    dosage_morning: Fraction = ZERO
    dosage_noon: Fraction = ZERO
    dosage_evening: Fraction = ZERO
    dosage_night: Fraction = ZERO
    units_per_package: Fraction = ZERO
    packages_per_prescription: Fraction = ZERO
    components: List[DrugComponent] = field(default_factory=list)
    description: str = ""
    show: bool = True
    obverse_photo: Optional[str] = None
    reverse_photo: Optional[str] = None

    def daily_dosage(self) -> Fraction:
        return self.dosage_morning + self.dosage_noon + self.dosage_evening + self.dosage_night

    def weekly_dosage(self) -> Fraction:
        return self.daily_dosage() * DAYS_PER_WEEK

    def prescription_units(self) -> Fraction:
        """Dosage units provided by one full prescription."""
        return self.units_per_package * self.packages_per_prescription

    def has_schedule(self) -> bool:
        return self.daily_dosage() > 0

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Drug":
        """Build a Drug from one entry of the data file."""
        drug = cls(
            trade_name=record["trade_name"],
            remaining=rational_from_json(record["remaining"]),
            dosage_morning=rational_from_json(record.get("dosage_morning", 0)),
            dosage_noon=rational_from_json(record.get("dosage_noon", 0)),
            dosage_evening=rational_from_json(record.get("dosage_evening", 0)),
            dosage_night=rational_from_json(record.get("dosage_night", 0)),
            units_per_package=rational_from_json(record["units_per_package"]),
            packages_per_prescription=rational_from_json(record["packages_per_prescription"]),
            components=[DrugComponent.from_record(c) for c in record.get("components", [])],
            description=record.get("description") or "",
            show=bool(record.get("show", True)),
            obverse_photo=record.get("obverse_photo"),
            reverse_photo=record.get("reverse_photo"),
        )
        for name in ("dosage_morning", "dosage_noon", "dosage_evening", "dosage_night"):
            if getattr(drug, name) < 0:
                raise ReserveError(f"{drug.trade_name}: {name} must not be negative")
        return drug

    def to_record(self) -> Dict[str, Any]:
        return {
            "trade_name": self.trade_name,
            "components": [c.to_record() for c in self.components],
            "description": self.description,
            "remaining": rational_to_json(self.remaining),
            "dosage_morning": rational_to_json(self.dosage_morning),
            "dosage_noon": rational_to_json(self.dosage_noon),
            "dosage_evening": rational_to_json(self.dosage_evening),
            "dosage_night": rational_to_json(self.dosage_night),
            "units_per_package": rational_to_json(self.units_per_package),
            "packages_per_prescription": rational_to_json(self.packages_per_prescription),
            "show": self.show,
            "obverse_photo": self.obverse_photo,
            "reverse_photo": self.reverse_photo,
        }


def drug_at(drugs: List[Drug], index: int) -> Drug:
    """Positional lookup that refuses negative indices and non-integers."""
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(drugs):
        logger.warning("drug index %r out of range (0..%d)", index, len(drugs) - 1)
        raise IndexOutOfRange(f"drug index {index!r} out of range")
    return drugs[index]


def load_drugs(path: str) -> List[Drug]:
    """Read the data file; any I/O or format problem becomes a PersistenceError."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            records = json.load(fh)
    except (OSError, ValueError) as e:
        logger.error("failed to load data from %s: %s", path, e)
        raise PersistenceError(f"failed to load data from {path}: {e}", path=path) from e

    if not isinstance(records, list):
        raise PersistenceError(f"{path}: expected a list of drug records", path=path)
    try:
        drugs = [Drug.from_record(r) for r in records]
    except (KeyError, TypeError, ValueError, ReserveError) as e:
        logger.error("invalid drug record in %s: %s", path, e)
        raise PersistenceError(f"invalid drug record in {path}: {e}", path=path) from e
    logger.debug("loaded %d drugs from %s", len(drugs), path)
    return drugs


def save_drugs(path: str, drugs: List[Drug]) -> None:
    """Write the data file atomically (temporary file + rename)."""
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".reserve-", suffix=".json", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump([d.to_record() for d in drugs], fh, indent=2, ensure_ascii=False)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        logger.error("failed to store data to %s: %s", path, e)
        raise PersistenceError(f"failed to store data to {path}: {e}", path=path) from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
    logger.debug("stored %d drugs to %s", len(drugs), path)


class ReserveStore:
    """Process-wide collection of drugs with a single mutation lock.

    Callers go through ``mutate()`` to change drugs and ``snapshot()`` to read
    them; both take the lock, so a reader never sees a half-applied mutation.
    """

    def __init__(self, drugs: List[Drug], path: Optional[str] = None):
        self._drugs = drugs
        self.path = path
        self._lock = Lock()

    @classmethod
    def load(cls, path: str) -> "ReserveStore":
        return cls(load_drugs(path), path=path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._drugs)

    def snapshot(self) -> List[Drug]:
        """Deep copy of the drug list as of the last completed mutation."""
        with self._lock:
            return copy.deepcopy(self._drugs)

    @contextmanager
    def mutate(self) -> Iterator[List[Drug]]:
        """Hold the lock, hand out the live drug list, flush on clean exit.

        Exceptions raised inside the block skip the flush and propagate. A
        flush failure raises PersistenceError with the in-memory change kept.
        """
        with self._lock:
            yield self._drugs
            self._flush_locked()

    def flush(self) -> None:
        """Write the current state to disk; use this to retry a failed flush."""
        with self._lock:
            self._flush_locked()

    def _flush_locked(self) -> None:
        if self.path is None:
            return
        save_drugs(self.path, self._drugs)
