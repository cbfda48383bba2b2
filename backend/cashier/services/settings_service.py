"""
Settings Service - typed access to the key/value settings table.

The `settings` table stores one string per key. Callers never look keys up
themselves: they receive a StoreSettings aggregate from get_settings() and
write through update_settings(), which applies every field in a single
transaction. The invoice counter is the one key this module does not write;
it belongs to invoice_number_service.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..models import Setting
from .concurrency import lock_for_update, transaction

KEY_STORE_NAME = "store_name"
KEY_STORE_ADDRESS = "store_address"
KEY_STORE_PHONE = "store_phone"
KEY_TAX_PERCENTAGE = "tax_percentage"
KEY_INVOICE_PREFIX = "invoice_prefix"
KEY_LAST_INVOICE_NUMBER = "last_invoice_number"
KEY_PRINTER_NAME = "printer_name"
KEY_PRINTER_PORT = "printer_port"
KEY_PAPER_WIDTH = "paper_width"

REQUIRED_KEYS = (
    KEY_STORE_NAME,
    KEY_STORE_ADDRESS,
    KEY_STORE_PHONE,
    KEY_TAX_PERCENTAGE,
    KEY_INVOICE_PREFIX,
)

# Printer keys are only consumed by presentation code
OPTIONAL_KEYS = (KEY_PRINTER_NAME, KEY_PRINTER_PORT, KEY_PAPER_WIDTH)

WRITABLE_KEYS = set(REQUIRED_KEYS) | set(OPTIONAL_KEYS)

MAX_PREFIX_LENGTH = 16
MAX_TEXT_LENGTH = 255


@dataclass(frozen=True)
class StoreSettings:
    store_name: str
    store_address: str
    store_phone: str
    tax_percentage: Decimal
    invoice_prefix: str
    last_invoice_number: int | None = None
    printer_name: str = ""
    printer_port: str = ""
    paper_width: str = ""

    @property
    def tax_rate_bps(self) -> int:
        return int(self.tax_percentage * 100)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tax_percentage"] = f"{self.tax_percentage:.2f}"
        data["tax_rate_bps"] = self.tax_rate_bps
        return data


def default_settings() -> dict[str, str]:
    """Baseline values for every recognised key."""
    return {
        KEY_STORE_NAME: current_app.config.get("DEFAULT_STORE_NAME", "My Store"),
        KEY_STORE_ADDRESS: "",
        KEY_STORE_PHONE: "",
        KEY_TAX_PERCENTAGE: "0.00",
        KEY_INVOICE_PREFIX: current_app.config.get("DEFAULT_INVOICE_PREFIX", "INV"),
        KEY_LAST_INVOICE_NUMBER: "0",
        KEY_PRINTER_NAME: "",
        KEY_PRINTER_PORT: "",
        KEY_PAPER_WIDTH: "3",
    }


def ensure_default_settings() -> list[str]:
    """
    Insert baseline rows for missing keys. Existing rows are left untouched.

    Returns the keys that were created.
    """
    with transaction() as session:
        existing = {key for (key,) in session.query(Setting.key).all()}
        created = []
        for key, value in default_settings().items():
            if key in existing:
                continue
            session.add(Setting(key=key, value=value))
            created.append(key)

    if created:
        current_app.logger.info("Created default settings: %s", ", ".join(created))
    return created


def _parse_tax_percentage(raw, *, stored: bool = False) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        if stored:
            raise PersistenceError("Stored tax_percentage is not a number", details={"value": raw})
        raise ValidationError("tax_percentage must be a number")

    if not value.is_finite() or value < 0 or value > 100:
        if stored:
            raise PersistenceError("Stored tax_percentage is out of range", details={"value": raw})
        raise ValidationError("tax_percentage must be between 0 and 100")

    if (value * 100) != (value * 100).to_integral_value():
        if stored:
            raise PersistenceError("Stored tax_percentage has more than two decimals", details={"value": raw})
        raise ValidationError("tax_percentage allows at most two decimal places")

    return value


def get_settings() -> StoreSettings:
    """
    Read every settings row straight from the database.

    Raises:
        NotFoundError: if any of the store identity, tax or prefix rows is missing
    """
    rows = {row.key: row.value for row in db.session.query(Setting).all()}

    missing = [key for key in REQUIRED_KEYS if key not in rows]
    if missing:
        raise NotFoundError("Settings not initialized", details={"missing_keys": missing})

    last_number = rows.get(KEY_LAST_INVOICE_NUMBER)
    try:
        last_number = int(last_number) if last_number is not None else None
    except ValueError:
        raise PersistenceError("Stored last_invoice_number is not an integer", details={"value": last_number})

    return StoreSettings(
        store_name=rows[KEY_STORE_NAME],
        store_address=rows[KEY_STORE_ADDRESS],
        store_phone=rows[KEY_STORE_PHONE],
        tax_percentage=_parse_tax_percentage(rows[KEY_TAX_PERCENTAGE], stored=True),
        invoice_prefix=rows[KEY_INVOICE_PREFIX],
        last_invoice_number=last_number,
        printer_name=rows.get(KEY_PRINTER_NAME, ""),
        printer_port=rows.get(KEY_PRINTER_PORT, ""),
        paper_width=rows.get(KEY_PAPER_WIDTH, ""),
    )


def _normalize_updates(fields: dict) -> dict[str, str]:
    if not isinstance(fields, dict) or not fields:
        raise ValidationError("No settings to update")

    unknown = sorted(k for k in fields if k not in WRITABLE_KEYS)
    if unknown:
        if KEY_LAST_INVOICE_NUMBER in unknown:
            raise ValidationError("last_invoice_number can only be reset, not written")
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    cleaned: dict[str, str] = {}
    for key, raw in fields.items():
        if raw is None:
            raise ValidationError(f"{key} cannot be null")

        if key == KEY_TAX_PERCENTAGE:
            cleaned[key] = f"{_parse_tax_percentage(raw):.2f}"
            continue

        if not isinstance(raw, (str, int, float)) or isinstance(raw, bool):
            raise ValidationError(f"{key} must be a string")
        value = str(raw).strip()

        if key == KEY_INVOICE_PREFIX:
            if not value:
                raise ValidationError("invoice_prefix cannot be blank")
            if len(value) > MAX_PREFIX_LENGTH:
                raise ValidationError(f"invoice_prefix exceeds max length {MAX_PREFIX_LENGTH}")
        elif key == KEY_STORE_NAME and not value:
            raise ValidationError("store_name cannot be blank")
        elif key == KEY_PAPER_WIDTH and value:
            try:
                width = Decimal(value)
            except InvalidOperation:
                raise ValidationError("paper_width must be a number")
            if not width.is_finite() or width <= 0:
                raise ValidationError("paper_width must be > 0")

        if len(value) > MAX_TEXT_LENGTH:
            raise ValidationError(f"{key} exceeds max length {MAX_TEXT_LENGTH}")

        cleaned[key] = value

    return cleaned


def update_settings(fields: dict) -> StoreSettings:
    """
    Validate and apply a partial settings update atomically.

    Either every field is written or none is. Rows missing for a writable key
    are created.
    """
    updates = _normalize_updates(fields)

    with transaction() as session:
        for key, value in updates.items():
            row = lock_for_update(session.query(Setting).filter_by(key=key)).first()
            if row is None:
                session.add(Setting(key=key, value=value))
            else:
                row.value = value
        session.flush()
        settings = get_settings()

    current_app.logger.info("Updated settings: %s", ", ".join(sorted(updates)))
    return settings
