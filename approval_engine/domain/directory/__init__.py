"""This module resolves actor ids to the roles they currently hold."""
from .role_provider import RoleProvider
from .in_memory_role_provider import InMemoryRoleProvider
from .file_system_role_provider import FilesystemRoleProvider
