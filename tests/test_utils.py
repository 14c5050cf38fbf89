"""
Tests for the utilities module
"""
import unittest
import os
import sys
from unittest.mock import patch, MagicMock

# Add parent directory to path to import our modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from alpinerouter.errors import CommandError
from alpinerouter.utils import log, warn_continue, error_exit, run_command, run_checked, command_exists

STAMP = '2024-05-01 12:00:00'


class TestUtils(unittest.TestCase):
    """Test cases for utility functions"""

    @patch('time.strftime', return_value=STAMP)
    @patch('builtins.print')
    def test_log(self, mock_print, mock_strftime):
        """Test log function"""
        message = "Test log message"
        log(message)
        mock_print.assert_called_once_with(f"{STAMP} [INFO] {message}")

    @patch('time.strftime', return_value=STAMP)
    @patch('builtins.print')
    def test_warn_continue(self, mock_print, mock_strftime):
        """Test warn_continue function"""
        message = "Test warning message"
        warn_continue(message)
        mock_print.assert_called_once_with(f"{STAMP} [WARNING] {message}")

    @patch('time.strftime', return_value=STAMP)
    @patch('builtins.print')
    @patch('sys.exit')
    def test_error_exit(self, mock_exit, mock_print, mock_strftime):
        """Test error_exit prints a timestamped error and exits with 1"""
        message = "Test error message"
        error_exit(message)
        mock_print.assert_called_once_with(f"{STAMP} [ERROR] {message}")
        mock_exit.assert_called_once_with(1)

    @patch('subprocess.run')
    def test_run_command(self, mock_run):
        """Test run_command function"""
        mock_result = MagicMock()
        mock_result.returncode = 0
        mock_run.return_value = mock_result

        result = run_command("echo test")

        mock_run.assert_called_once()
        self.assertEqual(result, mock_result)

    @patch('builtins.print')
    @patch('subprocess.run')
    def test_run_checked_raises_on_failure(self, mock_run, mock_print):
        """Test run_checked turns a non-zero exit into CommandError"""
        mock_run.return_value = MagicMock(returncode=3)

        with self.assertRaises(CommandError) as ctx:
            run_checked("false")

        self.assertEqual(ctx.exception.command, "false")
        self.assertEqual(ctx.exception.returncode, 3)

    @patch('subprocess.run')
    def test_run_checked_returns_result(self, mock_run):
        """Test run_checked passes the result through on success"""
        mock_result = MagicMock(returncode=0, stdout="ok")
        mock_run.return_value = mock_result

        self.assertIs(run_checked("true", silent=True), mock_result)

    @patch('shutil.which')
    def test_command_exists(self, mock_which):
        """Test command_exists function"""
        mock_which.return_value = '/bin/ls'
        self.assertTrue(command_exists('ls'))

        mock_which.return_value = None
        self.assertFalse(command_exists('nonexistentcommand'))


if __name__ == '__main__':
    unittest.main()
