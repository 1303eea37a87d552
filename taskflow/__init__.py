"""TaskFlow: role-scoped task management on Firebase."""

__version__ = "1.0.0"
