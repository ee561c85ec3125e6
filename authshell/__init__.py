"""AuthShell desktop client: session-aware sign-in and profile screens."""

__version__ = "1.0.0"
