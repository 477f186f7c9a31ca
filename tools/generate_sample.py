"""Write a sample data file and print what the front-end would show for it.

Usage: python tools/generate_sample.py [OUTPUT.json]
"""
import logging
import os
import sys
from fractions import Fraction

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from reserve_config import ReserveConfig
from reserve_engine import build_view, take_days
from reserve_fractions import format_fraction
from reserve_model import Drug, DrugComponent, ReserveStore, save_drugs

logging.basicConfig(level=os.environ.get("RESERVE_LOG_LEVEL", "INFO"))

out_path = sys.argv[1] if len(sys.argv) > 1 else "data.json"

drugs = [
    Drug(
        trade_name="Cardiolol 5",
        components=[DrugComponent(generic_name="bisoprolol", amount=Fraction(5), unit="mg")],
        description="with breakfast",
        remaining=Fraction(43, 2),
        dosage_morning=Fraction(1, 2),
        units_per_package=Fraction(30),
        packages_per_prescription=Fraction(3),
    ),
    Drug(
        trade_name="Thyrox 50",
        components=[DrugComponent(generic_name="levothyroxine", amount=Fraction(50), unit="µg")],
        description="30 minutes before breakfast",
        remaining=Fraction(12),
        dosage_morning=Fraction(1),
        units_per_package=Fraction(100),
        packages_per_prescription=Fraction(1),
    ),
    Drug(
        trade_name="Painaway",
        components=[DrugComponent(generic_name="ibuprofen", amount=Fraction(400), unit="mg")],
        description="as needed",
        remaining=Fraction(20),
        units_per_package=Fraction(20),
        packages_per_prescription=Fraction(1),
    ),
    Drug(
        trade_name="Old prescription",
        remaining=Fraction(3),
        dosage_evening=Fraction(1),
        units_per_package=Fraction(28),
        packages_per_prescription=Fraction(1),
        show=False,
    ),
]

save_drugs(out_path, drugs)
store = ReserveStore.load(out_path)
take_days(store, 1)

view = build_view(store, ReserveConfig(data_path=out_path))
print(f"Wrote sample data to: {out_path}\n")
for dv in view.drugs_to_display:
    weeks = "-" if dv.remaining_weeks is None else dv.remaining_weeks
    print(f" [{dv.index}] {dv.drug.trade_name:<20} remaining {format_fraction(dv.drug.remaining):>6}"
          f"  weeks {weeks!s:>3}  {dv.urgency.value}")
counts = view.pill_counts
print(f"\nPills per day: {format_fraction(counts.morning)} - {format_fraction(counts.noon)} - "
      f"{format_fraction(counts.evening)} - {format_fraction(counts.night)}")
