import shlex
import subprocess
from ..cli_logger import logger


def format_command(command):
    return " ".join(shlex.quote(str(part)) for part in command)


def run_shell_command(command, env=None, cwd=None, input_data=None):
    """
    Runs a command to completion and captures its output.

    Args:
        command (list): The command to execute as a list of strings.
        env (dict, optional): Environment for the child process.
        cwd (str, optional): Working directory for the command.
        input_data (str, optional): Data passed to the command's stdin.

    Returns:
        tuple: (stdout, stderr, returncode). A missing executable is reported
        as returncode 127 with the error text in stderr.
    """
    command = [str(part) for part in command]
    logger.debug(f"$ {format_command(command)} (cwd={cwd})")
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            env=env,
            input=input_data,
            check=False,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        logger.error(f"Command not found: {e.filename}")
        return "", str(e), 127
    except PermissionError as e:
        logger.error(f"Command is not executable: {e.filename}")
        return "", str(e), 126
    return result.stdout, result.stderr, result.returncode
