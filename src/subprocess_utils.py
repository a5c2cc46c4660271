"""
Subprocess execution with logging integration.

Used for cluster operations that have no fsspec equivalent, such as changing
permissions or replication through the HDFS shell. Command output is logged
at DEBUG level.
"""

import subprocess
import logging
from typing import List, Optional

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Outcome of a shell command."""

    success: bool
    stdout: Optional[str] = None
    error: Optional[str] = None


def run_logged_subprocess(
    command: List[str],
    logger: Optional[logging.Logger] = None,
    operation_name: str = "",
    timeout: int = 300,
    env: Optional[dict[str, str]] = None,
    suppress_output: bool = False,
) -> CommandResult:
    """
    Execute subprocess with automatic logging of command and output.

    Args:
        command: Command and arguments to execute
        logger: Logger instance (module logger if None)
        operation_name: Description of operation for log messages
        timeout: Timeout in seconds for subprocess execution
        env: Environment variables to pass to subprocess
        suppress_output: If True, only log command execution, not output

    Returns:
        CommandResult with success status, stdout, and error details
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    # Prepare log prefix
    log_prefix = f"{operation_name}: " if operation_name else ""

    logger.debug(f"{log_prefix}Executing: {' '.join(command)}")

    try:
        process = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            error_msg = f"Command timed out after {timeout} seconds"
            logger.debug(f"{log_prefix}Error: {error_msg}")
            return CommandResult(success=False, error=error_msg)

        # Log subprocess output (unless suppressed)
        if not suppress_output:
            if stdout:
                logger.debug(f"{log_prefix}Output: {stdout.strip()}")
            if stderr:
                if process.returncode == 0:
                    logger.debug(f"{log_prefix}Warnings: {stderr.strip()}")
                else:
                    logger.debug(f"{log_prefix}Errors: {stderr.strip()}")

        if process.returncode == 0:
            return CommandResult(success=True, stdout=stdout)
        else:
            return CommandResult(success=False, error=stderr)

    except OSError as e:
        error_msg = str(e)
        logger.debug(f"{log_prefix}Exception: {error_msg}")
        return CommandResult(success=False, error=error_msg)
