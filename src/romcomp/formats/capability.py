"""Capability bit-set describing what a ROM file is and what it can contain."""

from enum import Flag


class RomCapability(Flag):
    """Container format bits and platform bits, combined with ``|``.

    The two axes are independent: a ``.bin``/``.cue`` pair can hold a PSX or
    a PS2 game, an ``.iso`` can hold PSX, PS2, PSP or Wii games. The platform
    bits are narrowed to the user-selected target before conversion.
    """

    # Container formats
    BIN = 0x1  # raw binary image, described by a cue sheet
    ISO = 0x2
    N64 = 0x4  # little-endian
    V64 = 0x8  # byte-swapped
    Z64 = 0x10  # big-endian, the canonical layout
    NDS = 0x20

    CONTAINER_FORMATS = BIN | ISO | N64 | V64 | Z64 | NDS

    # Platforms
    PSX = 0x100
    PS2 = 0x200
    PSP = 0x400
    NINTENDO_64 = 0x800
    NINTENDO_DS = 0x1000
    WII = 0x2000

    PLATFORMS = PSX | PS2 | PSP | NINTENDO_64 | NINTENDO_DS | WII

    @property
    def container(self) -> "RomCapability":
        """Only the container format bits."""
        return self & RomCapability.CONTAINER_FORMATS

    @property
    def platforms(self) -> "RomCapability":
        """Only the platform bits."""
        return self & RomCapability.PLATFORMS

    def narrow(self, target: "RomCapability") -> "RomCapability":
        """Keep the container bits and replace the platform bits with ``target``."""
        return self.container | (target & RomCapability.PLATFORMS)


# Names accepted on the command line for the target platform
PLATFORM_NAMES: dict[str, RomCapability] = {
    "nds": RomCapability.NINTENDO_DS,
    "n64": RomCapability.NINTENDO_64,
    "psx": RomCapability.PSX,
    "ps2": RomCapability.PS2,
    "psp": RomCapability.PSP,
    "wii": RomCapability.WII,
}
