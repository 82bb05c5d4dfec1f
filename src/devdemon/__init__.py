"""DevDemon — an always-on coding agent loop for a single repository."""

__version__ = "0.3.0"
