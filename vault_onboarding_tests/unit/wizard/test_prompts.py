"""Tests for the wizard prompters."""

import io

from vault_onboarding.wizard.prompts import ConsolePrompter, DefaultsPrompter


def scripted(*answers):
    replies = iter(answers)
    return lambda prompt: next(replies)


class TestConsolePrompter:
    """Test terminal prompts with injected readers."""

    def test_confirm_default_on_empty(self):
        """Test an empty answer gives the default."""
        prompter = ConsolePrompter(input_func=scripted(""), output=io.StringIO())
        assert prompter.confirm("Continue?", default=True) is True

    def test_confirm_repeats_until_valid(self):
        """Test an unrecognised answer asks again."""
        output = io.StringIO()
        prompter = ConsolePrompter(input_func=scripted("maybe", "YES"), output=output)

        assert prompter.confirm("Continue?") is True
        assert "Please answer yes or no." in output.getvalue()

    def test_confirm_no(self):
        """Test "n" answers no."""
        prompter = ConsolePrompter(input_func=scripted("n"), output=io.StringIO())
        assert prompter.confirm("Continue?", default=True) is False

    def test_ask_default(self):
        """Test an empty answer to a question gives the default."""
        prompter = ConsolePrompter(input_func=scripted("  "), output=io.StringIO())
        assert prompter.ask("Address", default="http://localhost:8200") == "http://localhost:8200"

    def test_secret_ask_uses_secret_reader(self):
        """Test secret questions read without echo."""
        prompter = ConsolePrompter(
            input_func=scripted(),
            secret_func=scripted("ghp_secret"),
            output=io.StringIO(),
        )
        assert prompter.ask("Token", secret=True) == "ghp_secret"

    def test_choose_is_case_insensitive(self):
        """Test choices match regardless of case."""
        output = io.StringIO()
        prompter = ConsolePrompter(input_func=scripted("x", "e"), output=output)

        choice = prompter.choose("Mode?", [("P", "Persistent"), ("E", "Ephemeral")], default="P")

        assert choice == "E"
        assert "[P] Persistent" in output.getvalue()
        assert "Please choose one of: P, E" in output.getvalue()


class TestDefaultsPrompter:
    """Test non-interactive answers."""

    def test_always_yes(self):
        """Test every confirmation answers yes."""
        assert DefaultsPrompter().confirm("Continue?", default=False) is True

    def test_defaults(self):
        """Test questions and choices answer their defaults."""
        prompter = DefaultsPrompter()
        assert prompter.ask("Address", default="http://vault:8200") == "http://vault:8200"
        assert prompter.choose("Mode?", [("P", "p"), ("E", "e")], default="P") == "P"
