from pantry.errors import InputError


def validate_barcode(barcode: str, operation: str) -> None:
    if not barcode:
        raise InputError(f"Empty barcode passed to {operation}")


def validate_delta(delta, barcode: str, operation: str) -> None:
    # bool is an int subclass but never a meaningful quantity change
    if not isinstance(delta, int) or isinstance(delta, bool):
        raise InputError(f"Non-integer delta {delta!r} passed to {operation} for {barcode}")
