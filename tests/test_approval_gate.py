"""
Unit tests for ApprovalGate.
"""

from unittest.mock import patch

import pytest

from agents.approval_gate import ApprovalGate, ApprovalRejectedError


class TestApprovalGate:

    def test_auto_approve(self):
        assert ApprovalGate(mode="auto_approve").request_approval("# Plan") is True

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            ApprovalGate(mode="pr_merge")

    @patch("builtins.input", side_effect=["yes"])
    def test_cli_approve(self, _input, capsys):
        assert ApprovalGate().request_approval("# Plan\nline") is True
        assert "# Plan" in capsys.readouterr().out

    @patch("builtins.input", side_effect=["maybe", "view", "y"])
    def test_cli_reprompts(self, mock_input):
        assert ApprovalGate().request_approval("# Plan") is True
        assert mock_input.call_count == 3

    @patch("builtins.input", side_effect=["no"])
    def test_cli_reject(self, _input):
        with pytest.raises(ApprovalRejectedError):
            ApprovalGate().request_approval("# Plan")

    @patch("builtins.input", side_effect=EOFError)
    def test_cli_eof_rejects(self, _input):
        with pytest.raises(ApprovalRejectedError):
            ApprovalGate().request_approval("# Plan")
