"""External compression tools, their command lines and the output names they produce."""

import re
from dataclasses import dataclass
from pathlib import Path

from ..config import RomcompConfig
from .capability import RomCapability
from .cue import canonical_cue_path, locate_cue_sheet


@dataclass(frozen=True)
class ExternalTool:
    """An external program romcomp hands the actual compression to."""

    name: str
    binary: str
    description: str
    install_url: str | None = None


CHDMAN = ExternalTool(
    name="CHDMAN",
    binary="chdman",
    description="PlayStation and PlayStation 2 disc images",
    install_url="https://docs.mamedev.org/tools/chdman.html",
)
MAXCSO = ExternalTool(
    name="MAXCSO",
    binary="maxcso",
    description="PlayStation Portable disc images",
    install_url="https://github.com/unknownbrackets/maxcso",
)
ROM64 = ExternalTool(
    name="ROM64",
    binary="rom64",
    description="Nintendo 64 cartridge byte order conversion",
    install_url="https://github.com/mroach/rom64",
)
BITBUTCHER = ExternalTool(
    name="BITBUTCHER",
    binary="BitButcher",
    description="Nintendo DS cartridge trimming",
    install_url="https://github.com/XanderXAJ/BitButcher",
)
DOLPHIN_TOOL = ExternalTool(
    name="DOLPHIN-TOOL",
    binary="dolphin-tool",
    description="Wii disc images",
    install_url="https://dolphin-emu.org/",
)

PLATFORM_TOOLS: dict[RomCapability, tuple[ExternalTool, ...]] = {
    RomCapability.PSX: (CHDMAN,),
    RomCapability.PS2: (CHDMAN,),
    RomCapability.PSP: (MAXCSO,),
    RomCapability.NINTENDO_64: (ROM64,),
    RomCapability.NINTENDO_DS: (BITBUTCHER,),
    RomCapability.WII: (DOLPHIN_TOOL,),
}

DISC_CONSOLES = RomCapability.PSX | RomCapability.PS2
CARTRIDGES = RomCapability.NINTENDO_64 | RomCapability.NINTENDO_DS

_DISC_SUFFIX = re.compile(r"(\.iso|\.cue(\.txt)?)$", re.IGNORECASE)
_CARTRIDGE_SUFFIX = re.compile(r"\.(nds|n64|v64|z64)$", re.IGNORECASE)


@dataclass(frozen=True)
class ToolInvocation:
    """A program plus the argument template it is called with.

    Arguments may contain ``{input}`` and ``{output}`` placeholders.
    """

    program: str
    arguments: tuple[str, ...]

    def argv(self, input_file: Path, output_file: Path) -> list[str]:
        """Build the command line for one conversion."""
        return [
            self.program,
            *(arg.format(input=input_file, output=output_file) for arg in self.arguments),
        ]


def required_tools(platform: RomCapability) -> list[ExternalTool]:
    """External tools needed to convert ROMs of the given target platform."""
    tools: list[ExternalTool] = []
    for bit, platform_tools in PLATFORM_TOOLS.items():
        if bit in platform:
            tools.extend(t for t in platform_tools if t not in tools)
    return tools


def resolve_tool(
    capability: RomCapability,
    config: RomcompConfig | None = None,
) -> ToolInvocation | None:
    """Pick the external tool for a capability.

    Platform bits are not mutually exclusive, so the order of the checks
    below is what decides: disc consoles, PSP, N64 (unless already z64),
    NDS, Wii.
    """
    if capability & DISC_CONSOLES:
        return ToolInvocation(CHDMAN.binary, ("createcd", "-i", "{input}", "-o", "{output}"))

    if RomCapability.PSP in capability:
        return ToolInvocation(MAXCSO.binary, ("{input}",))

    if RomCapability.NINTENDO_64 in capability and RomCapability.Z64 not in capability:
        return ToolInvocation(ROM64.binary, ("convert", "{input}"))

    if RomCapability.NINTENDO_DS in capability:
        return ToolInvocation(BITBUTCHER.binary, ("-e", "{input}"))

    if RomCapability.WII in capability:
        config = config or RomcompConfig()
        return ToolInvocation(
            DOLPHIN_TOOL.binary,
            (
                "convert",
                "-b",
                str(config.wii_block_size),
                "-c",
                config.wii_compression,
                "-f",
                "rvz",
                "-i",
                "{input}",
                "-l",
                str(config.wii_compression_level),
                "-o",
                "{output}",
            ),
        )

    return None


def tool_input(
    path: Path,
    capability: RomCapability,
    *,
    verify_tracks: bool = True,
) -> Path | None:
    """The file a tool is pointed at: the canonical cue sheet for raw images, else ``path``."""
    if RomCapability.BIN in capability:
        cue = locate_cue_sheet(path, search_directory=verify_tracks)
        return canonical_cue_path(cue) if cue else None
    return path


def _replace_suffix(path: Path, pattern: re.Pattern[str], replacement: str) -> Path | None:
    name, count = pattern.subn(replacement, path.name)
    if not count:
        return None
    return path.with_name(name)


def output_path(
    path: Path,
    capability: RomCapability,
    *,
    verify_tracks: bool = True,
) -> Path | None:
    """Where the converted file for ``path`` ends up, or None if nothing applies."""
    source = tool_input(path, capability, verify_tracks=verify_tracks)
    if source is None:
        return None

    if capability & DISC_CONSOLES:
        return _replace_suffix(source, _DISC_SUFFIX, ".chd")
    if RomCapability.PSP in capability:
        return source.with_suffix(".cso")
    if RomCapability.WII in capability:
        return source.with_suffix(".rvz")
    if capability & CARTRIDGES:
        return _replace_suffix(source, _CARTRIDGE_SUFFIX, ".zip")
    return None
