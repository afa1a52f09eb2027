"""Service entry points dispatched by the CLI."""

__all__ = ["command_api", "quartermaster"]
