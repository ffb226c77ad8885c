"""Preset sizes and startup commands for common game servers."""

from dataclasses import dataclass

from gamepanel.contracts.dto.server import ServerCreate
from gamepanel.quota import HARD_CAP_CPU, HARD_CAP_DISK_MB, HARD_CAP_RAM_MB


@dataclass(frozen=True)
class ServerTemplate:
    name: str
    ram: int
    cpu: float
    disk: int
    startup_command: str


TEMPLATES: dict[str, ServerTemplate] = {
    "minecraft": ServerTemplate(
        "Minecraft", 1024, 1.0, 5120, "java -Xms512M -Xmx1024M -jar server.jar"
    ),
    "cs2": ServerTemplate(
        "Counter-Strike 2",
        1024,
        1.0,
        10240,
        "./cs2 -console -usercon +game_type 0 +game_mode 1 +mapgroup mg_active +map de_dust2",
    ),
    "valheim": ServerTemplate(
        "Valheim",
        1024,
        1.0,
        3072,
        './valheim_server.x86_64 -name "My Server" -port 2456 -world "Dedicated"',
    ),
    "teamspeak": ServerTemplate("TeamSpeak 3", 512, 1.0, 1024, "./ts3server_minimal_runscript.sh"),
}


def from_template(key: str, name: str | None = None) -> ServerCreate:
    """Build a creation request from a template, capped to the global limits.

    Raises KeyError for an unknown template.
    """
    template = TEMPLATES[key]
    return ServerCreate(
        name=name or f"{template.name} Server",
        ram=min(template.ram, HARD_CAP_RAM_MB),
        cpu=min(template.cpu, HARD_CAP_CPU),
        disk=min(template.disk, HARD_CAP_DISK_MB),
        startup_command=template.startup_command,
    )
