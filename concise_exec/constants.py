"""Package-wide constants."""

__version__ = "0.1.0"

# Name shown in the session banner.
APP_NAME = "concise-exec"
