"""Surface materials that affect reflection."""

from enum import Enum


class Material(str, Enum):
    """Building surface material."""

    CONCRETE = "concrete"
    GLASS = "glass"
    METAL = "metal"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | Material") -> "Material":
        """Map a material name to a Material, unknown names become OTHER."""
        if isinstance(value, Material):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER
