import enum


class AccessType(str, enum.Enum):
    """Internal staff vs. client users; also selects which feature matrix applies."""

    internal = "internal"
    external = "external"
