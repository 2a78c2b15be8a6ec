"""TaskHub - task management API with projects, comments and live updates."""

__version__ = "0.1.0"
