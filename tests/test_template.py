"""Tests for prompt template filling."""

from xa.prompts import PromptArg
from xa.template import apply_command_quirks, fill_template


class TestFillTemplate:
    """Tests for placeholder substitution."""

    def test_input_replaced_everywhere(self):
        """Every {input} occurrence gets the input verbatim."""
        result = fill_template("{input} / {input}", "a {b} c")
        assert result == "a {b} c / a {b} c"

    def test_named_arg_default(self):
        """Declared arguments fall back to their default."""
        args = [PromptArg("tone", "professional")]
        assert fill_template("Polish in a {tone} tone: {input}", "hi", [], args) == \
            "Polish in a professional tone: hi"

    def test_named_arg_positional_override(self):
        """A positional arg fills the declared argument at the same index."""
        args = [PromptArg("lang", "zh"), PromptArg("style", "formal")]
        result = fill_template("{lang}/{style}/{lang}", "x", ["en"], args)
        assert result == "en/formal/en"

    def test_numbered_args(self):
        """{argN} is one-indexed."""
        assert fill_template("{arg1}-{arg2}", "x", ["a", "b"]) == "a-b"

    def test_numbered_args_skip_declared_slots(self):
        """Positions taken by declared arguments do not fill {argN}."""
        args = [PromptArg("lang", "zh")]
        result = fill_template("{lang} {arg1} {arg2}", "x", ["en", "extra"], args)
        assert result == "en {arg1} extra"

    def test_catch_all_args(self):
        """{args} joins every positional arg with single spaces."""
        assert fill_template("run: {args}", "x", ["a", "b", "c"]) == "run: a b c"

    def test_catch_all_without_args(self):
        """{args} becomes empty when no positional args are given."""
        assert fill_template("run: [{args}]", "x") == "run: []"

    def test_unknown_placeholders_untouched(self):
        """Templates without known placeholders come back unchanged."""
        template = "Keep {this} and {arg3} as they are"
        assert fill_template(template, "input", ["a"]) == template

    def test_input_containing_placeholder_text(self):
        """Input is substituted first, so placeholder text inside it can be filled later."""
        args = [PromptArg("tone", "calm")]
        assert fill_template("{input}", "{tone}", [], args) == "calm"


class TestCommandQuirks:
    """Tests for the translate argument swap."""

    def test_translate_swaps_language_code(self):
        """`translate en some text` means: translate 'some text' into en."""
        text, args = apply_command_quirks("translate", "en", ["Bonjour", "monde"])
        assert text == "Bonjour monde"
        assert args == ["en"]

    def test_translate_three_letter_code(self):
        text, args = apply_command_quirks("translate", "deu", ["Hello"])
        assert (text, args) == ("Hello", ["deu"])

    def test_translate_without_args_unchanged(self):
        """A short input alone is the text to translate."""
        assert apply_command_quirks("translate", "en", []) == ("en", [])

    def test_translate_long_input_unchanged(self):
        assert apply_command_quirks("translate", "Hello", ["fr"]) == ("Hello", ["fr"])

    def test_other_commands_unchanged(self):
        assert apply_command_quirks("polish", "en", ["text"]) == ("en", ["text"])
