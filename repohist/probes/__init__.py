"""Runtime probes."""

from repohist.probes.tools import (
    CommandResult,
    SubprocessError,
    run_command,
)
