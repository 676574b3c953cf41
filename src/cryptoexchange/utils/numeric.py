from decimal import Decimal, InvalidOperation

from cryptoexchange.errors import InvalidParameter

# Exchanges compare signed request bodies byte for byte, so amounts and
# prices are always sent with a fixed number of fractional digits.
DEFAULT_PRECISION: int = 8


def format_decimal(value: Decimal | float | int | str, precision: int = DEFAULT_PRECISION) -> str:
    """Formats a number as a fixed-point decimal string.

    Floats are routed through `str()` first so that their shortest
    round-tripping representation is used instead of the binary expansion,
    e.g. `0.1` becomes `"0.10000000"` rather than `"0.10000000000000000555"`.

    Args:
        value: The number to format.
        precision: The number of digits after the decimal point.

    Returns:
        The formatted string.

    Raises:
        InvalidParameter: If the value is not a finite number.
    """
    if isinstance(value, bool):
        err_msg = f"Expected a number, got {value!r}"
        raise InvalidParameter(err_msg)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        err_msg = f"Expected a number, got {value!r}"
        raise InvalidParameter(err_msg) from e
    if not number.is_finite():
        err_msg = f"Expected a finite number, got {value!r}"
        raise InvalidParameter(err_msg)
    return f"{number:.{precision}f}"
