from .agents import (
    generate_name,
    get_agent,
    list_agents,
    lookup,
    register,
    resolve,
    touch,
    touch_in,
    whoami,
)
from .projects import ensure_project, get_project, list_projects, slugify

__all__ = [
    "register",
    "touch",
    "touch_in",
    "resolve",
    "get_agent",
    "lookup",
    "list_agents",
    "whoami",
    "generate_name",
    "ensure_project",
    "get_project",
    "list_projects",
    "slugify",
]
