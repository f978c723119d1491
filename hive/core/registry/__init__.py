from . import api
from .api import (
    ensure_project,
    generate_name,
    get_agent,
    get_project,
    list_agents,
    list_projects,
    lookup,
    register,
    touch,
    whoami,
)
from .commands import app

__all__ = [
    "api",
    "app",
    "ensure_project",
    "generate_name",
    "get_agent",
    "get_project",
    "list_agents",
    "list_projects",
    "lookup",
    "register",
    "touch",
    "whoami",
]
