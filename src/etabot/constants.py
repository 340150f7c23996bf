from __future__ import annotations

from typing import Final

# Discord limits
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
MAX_FIELD_VALUE: Final[int] = 1024
# Discord rejects communication timeouts longer than 28 days.
MAX_TIMEOUT_SECONDS: Final[int] = 28 * 24 * 60 * 60

# Reply limits
TOP_TARGETS_LIMIT: Final[int] = 5
RANKING_LIMIT: Final[int] = 10
HISTORY_LIMIT: Final[int] = 10

# Persisted document names
CONFIG_DOCUMENT: Final[str] = "config"
HISTORY_DOCUMENT: Final[str] = "history"

# Shown in place of the bot token whenever the config leaves the process.
REDACTED_TOKEN: Final[str] = "***hidden***"

TIMEOUT_REASON_TEMPLATE: Final[str] = "ETA command automatic timeout (executor: {executor})"

# Colors (hex values)
COLORS = {
    "default": 0x5865F2,
    "success": 0x57F287,
    "ranking": 0xFEE75C,
    "history": 0xEB459E,
    "warning": 0xF1C40F,
    "error": 0xED4245,
}

# Command name -> accepted spellings (English + Japanese)
COMMAND_ALIASES = {
    "help": ("help", "ヘルプ"),
    "stats": ("stats", "統計"),
    "ranking": ("ranking", "ランキング"),
    "history": ("history", "履歴"),
    "info": ("info", "情報"),
}

# Error messages
ERROR_MESSAGES = {
    "missing_target": "Usage: `{prefix} @user`",
    "multiple_targets": "Mention exactly one user: `{prefix} @user`",
    "target_not_found": "That user could not be found in this server.",
    "self_target": "You cannot time out yourself.",
    "bot_target": "Bots cannot be timed out.",
    "target_not_eligible": "That user does not have the target role.",
    "executor_ineligible": "Members with the target role cannot use this command.",
    "insufficient_bot_permission": "I do not have permission to time out members.",
    "cooldown": "On cooldown. Please wait {seconds}s.",
    "action_failed": "The timeout could not be applied. Please check my permissions.",
    "record_failed": "The timeout was applied but could not be recorded.",
}
