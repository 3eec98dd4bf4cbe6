"""Exit codes for the tflsctl CLI.

- 0: Success (including an install the user declined)
- 1: Install failure (network, checksum, archive)
- 2: Client error (language server failed to start)
- 3: Invalid usage (bad arguments, missing config)
- 4: Unsupported platform (no build for this OS/architecture)
"""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_INSTALL_FAILURE = 1
EXIT_CLIENT_ERROR = 2
EXIT_INVALID_USAGE = 3
EXIT_UNSUPPORTED_PLATFORM = 4
