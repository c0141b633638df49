"""Delivery address formatting for customer profiles."""

APARTMENT_PARTS = (
    ("complex_name", "{}"),
    ("building_number", "Building {}"),
    ("floor_number", "Floor {}"),
    ("apartment_number", "Apt {}"),
)


def format_delivery_address(user) -> str:
    """One-line address for drivers; apartments get complex/building/floor/apt appended."""
    if not user.address:
        return ""
    if user.address_type != "APARTMENT":
        return user.address

    parts = [user.address]
    for attr, template in APARTMENT_PARTS:
        value = getattr(user, attr, None)
        if value:
            parts.append(template.format(value))
    return ", ".join(parts)


def clean_text(value: str | None) -> str | None:
    """Strip whitespace; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
