from .command_executor import run_shell_command, format_command
from .file_manager import download_file, extract, bunzip2, sha256sum, copy_matching
