"""Role definitions — markdown files with a YAML frontmatter header."""

from devdemon.roles.loader import load_all_roles, load_role, resolve_role
from devdemon.roles.models import RoleConfig, RoleFrontmatter

__all__ = ["RoleConfig", "RoleFrontmatter", "load_all_roles", "load_role", "resolve_role"]
