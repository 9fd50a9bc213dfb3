"""Built-in reference data for DTC meanings and maintenance bands.

Only a starter set of common powertrain codes ships here; shops with a
licensed code database load it straight into ``dtc_codes``.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DtcCode, MaintenanceBand


DEFAULT_DTC_CODES = {
    "P0100": "Mass or volume air flow circuit malfunction",
    "P0101": "Mass or volume air flow circuit range/performance problem",
    "P0113": "Intake air temperature circuit high input",
    "P0128": "Coolant thermostat (coolant temperature below thermostat regulating temperature)",
    "P0131": "O2 sensor circuit low voltage (bank 1, sensor 1)",
    "P0141": "O2 sensor heater circuit malfunction (bank 1, sensor 2)",
    "P0171": "System too lean (bank 1)",
    "P0172": "System too rich (bank 1)",
    "P0174": "System too lean (bank 2)",
    "P0300": "Random/multiple cylinder misfire detected",
    "P0301": "Cylinder 1 misfire detected",
    "P0302": "Cylinder 2 misfire detected",
    "P0303": "Cylinder 3 misfire detected",
    "P0304": "Cylinder 4 misfire detected",
    "P0325": "Knock sensor 1 circuit malfunction (bank 1 or single sensor)",
    "P0335": "Crankshaft position sensor A circuit malfunction",
    "P0401": "Exhaust gas recirculation flow insufficient detected",
    "P0420": "Catalyst system efficiency below threshold (bank 1)",
    "P0430": "Catalyst system efficiency below threshold (bank 2)",
    "P0440": "Evaporative emission control system malfunction",
    "P0442": "Evaporative emission control system leak detected (small leak)",
    "P0455": "Evaporative emission control system leak detected (large leak)",
    "P0456": "Evaporative emission control system leak detected (very small leak)",
    "P0500": "Vehicle speed sensor malfunction",
    "P0505": "Idle control system malfunction",
    "P0562": "System voltage low",
    "P0700": "Transmission control system malfunction",
}

DEFAULT_MAINTENANCE_BANDS = (
    (0, 29_999, "Early life", "Oil and filter changes, tire rotation, multi-point inspection."),
    (
        30_000,
        59_999,
        "30k service",
        "Engine and cabin air filters, brake inspection, fluid level and condition checks.",
    ),
    (
        60_000,
        99_999,
        "60k service",
        "Spark plugs, transmission fluid, coolant service, drive belts and hoses.",
    ),
    (
        100_000,
        149_999,
        "100k service",
        "Timing belt where equipped, water pump, suspension wear items, O2 sensors.",
    ),
    (
        150_000,
        10_000_000,
        "High mileage",
        "Seals and gaskets, motor mounts, catalytic converter health, full fluid replacement.",
    ),
)


async def seed_reference_data(db: AsyncSession) -> None:
    """Insert any missing reference rows.  Safe to call on every startup."""
    result = await db.execute(select(DtcCode.code))
    existing_codes = set(result.scalars().all())
    for code, meaning in DEFAULT_DTC_CODES.items():
        if code not in existing_codes:
            db.add(DtcCode(code=code, generic_meaning=meaning))

    band_count = await db.scalar(select(func.count()).select_from(MaintenanceBand))
    if not band_count:
        for min_mileage, max_mileage, label, guidance in DEFAULT_MAINTENANCE_BANDS:
            db.add(
                MaintenanceBand(
                    min_mileage=min_mileage,
                    max_mileage=max_mileage,
                    label=label,
                    guidance=guidance,
                )
            )
    await db.commit()
