from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from ..constants import MAX_TIMEOUT_SECONDS, REDACTED_TOKEN


@dataclass(frozen=True)
class BotConfig:
    """The persisted, operator-editable configuration document."""

    token: str = "YOUR_BOT_TOKEN_HERE"
    target_role_id: int = 0
    prefix: str = "!eta"
    min_timeout: int = 10
    max_timeout: int = 90
    cooldown_seconds: int = 60
    web_port: int = 3000
    web_password: str = "admin123"
    enabled_guilds: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        doc = asdict(self)
        doc["enabled_guilds"] = list(self.enabled_guilds)
        return doc

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> "BotConfig":
        """Build a config from a validated document, defaults filling gaps."""
        base = default_config()
        base.update({k: v for k, v in doc.items() if k in EDITABLE_FIELDS})
        return cls(
            token=str(base["token"]),
            target_role_id=_as_int(base["target_role_id"]),
            prefix=str(base["prefix"]),
            min_timeout=_as_int(base["min_timeout"]),
            max_timeout=_as_int(base["max_timeout"]),
            cooldown_seconds=_as_int(base["cooldown_seconds"]),
            web_port=_as_int(base["web_port"]),
            web_password=str(base["web_password"]),
            enabled_guilds=tuple(_as_int(g) for g in base["enabled_guilds"]),
        )

    def guild_enabled(self, guild_id: int) -> bool:
        # An empty allow-list enables every guild.
        return not self.enabled_guilds or guild_id in self.enabled_guilds


EDITABLE_FIELDS = frozenset(
    (
        "token",
        "target_role_id",
        "prefix",
        "min_timeout",
        "max_timeout",
        "cooldown_seconds",
        "web_port",
        "web_password",
        "enabled_guilds",
    )
)

# Keys used by the original admin page.
FIELD_ALIASES = {
    "targetRoleId": "target_role_id",
    "minTimeout": "min_timeout",
    "maxTimeout": "max_timeout",
    "cooldownSeconds": "cooldown_seconds",
    "webPort": "web_port",
    "webPassword": "web_password",
    "enabledGuilds": "enabled_guilds",
}


def default_config() -> dict[str, Any]:
    return BotConfig().to_dict()


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str


def _is_int_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, str) and value.strip().isdigit()


def _as_int(value: Any) -> int:
    return int(value.strip()) if isinstance(value, str) else int(value)


def validate_config(doc: dict[str, Any]) -> list[ValidationIssue]:
    """Validate a full config document. Returns list of issues; empty means valid."""

    if not isinstance(doc, dict):
        return [ValidationIssue(path="$", message="Config must be an object")]

    issues: list[ValidationIssue] = []

    if not isinstance(doc.get("token"), str):
        issues.append(ValidationIssue(path="$.token", message="token must be a string"))
    if not isinstance(doc.get("web_password"), str) or not doc.get("web_password"):
        issues.append(ValidationIssue(path="$.web_password", message="web_password must be a non-empty string"))

    prefix = doc.get("prefix")
    if not isinstance(prefix, str) or not prefix.strip():
        issues.append(ValidationIssue(path="$.prefix", message="prefix must be a non-empty string"))
    elif any(ch.isspace() for ch in prefix):
        issues.append(ValidationIssue(path="$.prefix", message="prefix must not contain whitespace"))

    ints: dict[str, int] = {}
    for key in ("target_role_id", "min_timeout", "max_timeout", "cooldown_seconds", "web_port"):
        value = doc.get(key)
        if not _is_int_like(value):
            issues.append(ValidationIssue(path=f"$.{key}", message=f"{key} must be a non-negative integer"))
        else:
            ints[key] = _as_int(value)

    if "min_timeout" in ints and ints["min_timeout"] <= 0:
        issues.append(ValidationIssue(path="$.min_timeout", message="min_timeout must be greater than 0"))
    if "max_timeout" in ints and ints["max_timeout"] > MAX_TIMEOUT_SECONDS:
        issues.append(
            ValidationIssue(path="$.max_timeout", message=f"max_timeout must be at most {MAX_TIMEOUT_SECONDS}")
        )
    if "min_timeout" in ints and "max_timeout" in ints and ints["min_timeout"] > ints["max_timeout"]:
        issues.append(ValidationIssue(path="$.max_timeout", message="max_timeout must be >= min_timeout"))
    if "web_port" in ints and not 1 <= ints["web_port"] <= 65535:
        issues.append(ValidationIssue(path="$.web_port", message="web_port must be between 1 and 65535"))

    guilds = doc.get("enabled_guilds")
    if not isinstance(guilds, (list, tuple)):
        issues.append(ValidationIssue(path="$.enabled_guilds", message="enabled_guilds must be a list"))
    else:
        for i, g in enumerate(guilds):
            if not _is_int_like(g):
                issues.append(
                    ValidationIssue(path=f"$.enabled_guilds[{i}]", message="guild id must be a non-negative integer")
                )

    return issues


def merge_config(current: BotConfig, partial: dict[str, Any]) -> dict[str, Any]:
    """Overlay an update onto the current config, field by field.

    Only known fields (or their camelCase aliases) are taken; anything else
    is dropped. A missing, empty or redacted token keeps the stored one.
    """
    doc = current.to_dict()
    for key, value in partial.items():
        field = FIELD_ALIASES.get(key, key)
        if field not in EDITABLE_FIELDS:
            continue
        if field == "token" and (value is None or value == "" or value == REDACTED_TOKEN):
            continue
        doc[field] = value
    return doc


def redact(config: BotConfig) -> dict[str, Any]:
    doc = config.to_dict()
    doc["token"] = REDACTED_TOKEN
    return doc


def load_config_document(doc: dict[str, Any]) -> tuple[BotConfig, list[ValidationIssue]]:
    """Read a persisted document leniently.

    Unknown keys are dropped, camelCase keys from older files are accepted and
    missing fields take their defaults. If the result does not validate the
    defaults are returned together with the issues found, except that a
    usable stored token and admin secret are kept.
    """
    merged = default_config()
    for key, value in doc.items():
        field = FIELD_ALIASES.get(key, key)
        if field in EDITABLE_FIELDS:
            merged[field] = value
    issues = validate_config(merged)
    if issues:
        bad_paths = {issue.path for issue in issues}
        kept = {
            field: merged[field] for field in ("token", "web_password") if f"$.{field}" not in bad_paths
        }
        return BotConfig(**kept), issues
    return BotConfig.from_dict(merged), []
