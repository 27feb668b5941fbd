import unittest
from unittest.mock import patch, MagicMock
from depfetch.utils.command_executor import format_command, run_shell_command


class TestCommandExecutor(unittest.TestCase):

    @patch('subprocess.run')
    def test_run_shell_command(self, mock_run):
        mock_run.return_value = MagicMock(stdout="ok", stderr="", returncode=0)
        stdout, stderr, returncode = run_shell_command(["make", "-j4"], cwd="/tmp/src")
        self.assertEqual((stdout, stderr, returncode), ("ok", "", 0))
        mock_run.assert_called_once_with(
            ["make", "-j4"],
            capture_output=True,
            text=True,
            env=None,
            input=None,
            check=False,
            cwd="/tmp/src",
        )

    @patch('subprocess.run', side_effect=FileNotFoundError(2, "No such file or directory", "cmake"))
    def test_missing_executable(self, mock_run):
        stdout, stderr, returncode = run_shell_command(["cmake", "--version"])
        self.assertEqual(returncode, 127)
        self.assertEqual(stdout, "")
        self.assertIn("No such file or directory", stderr)

    def test_format_command_quotes_arguments(self):
        self.assertEqual(format_command(["cc", "-DNAME=a b", "x.c"]), "cc '-DNAME=a b' x.c")


if __name__ == '__main__':
    unittest.main()
