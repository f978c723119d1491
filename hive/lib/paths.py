import os
from pathlib import Path


def dot_hive() -> Path:
    """Returns the hive home directory, ~/.hive unless HIVE_HOME is set."""
    override = os.environ.get("HIVE_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".hive"


def package_root() -> Path:
    """Returns hive package root directory."""
    return Path(__file__).resolve().parent.parent


def store_path() -> Path:
    """Returns the shared coordination store.

    Resolution order: HIVE_DB, legacy AGENT_MAIL_DB, config `store_path`,
    ~/.agent-mail.db.
    """
    for var in ("HIVE_DB", "AGENT_MAIL_DB"):
        value = os.environ.get(var)
        if value:
            return Path(value).expanduser()

    from . import config

    configured = config.load_config().get("store_path")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".agent-mail.db"


def project_key() -> str:
    """Returns the logical workspace key: PROJECT_KEY or the current directory."""
    value = os.environ.get("PROJECT_KEY")
    if value:
        return value
    return str(Path.cwd().resolve())


def default_agent() -> str | None:
    """Returns the calling context's agent name from AGENT_NAME, if any."""
    return os.environ.get("AGENT_NAME") or None
