"""Tests for the structured header tag-list grammar."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vcf_codec.errors import GrammarError
from vcf_codec.tag_grammar import format_tags, parse_tags, quote_value


class TestParseTags:
    """Tests for parse_tags."""

    def test_unquoted_values(self):
        """Bare values should be read up to the next comma."""
        assert parse_tags("<ID=1,length=249250621,assembly=b37>") == {
            "ID": "1",
            "length": "249250621",
            "assembly": "b37",
        }

    def test_quoted_value_with_delimiters(self):
        """Commas, equals signs and angle brackets inside quotes are data."""
        tags = parse_tags('<ID=X,Description="a, b=c <d>",Source="src">')
        assert tags["Description"] == "a, b=c <d>"
        assert tags["Source"] == "src"

    def test_quotes_are_stripped(self):
        """Returned values should not include the surrounding quotes."""
        assert parse_tags('<ID=GT,Description="Genotype">')["Description"] == "Genotype"

    def test_escaped_quote_and_backslash(self):
        """Backslash escapes inside quotes should be unescaped."""
        tags = parse_tags(r'<ID=X,Description="say \"hi\" to C:\\dir">')
        assert tags["Description"] == 'say "hi" to C:\\dir'

    def test_backslash_outside_quotes_is_literal(self):
        """Outside quotes a backslash is an ordinary character."""
        assert parse_tags(r"<ID=a\b>") == {"ID": r"a\b"}

    def test_semicolons_in_values(self):
        """Semicolons carry no meaning in a tag list."""
        tags = parse_tags("<ID=TissueSample,Genomes=Germline;Tumor,Mixture=.3;.7>")
        assert tags["Genomes"] == "Germline;Tumor"
        assert tags["Mixture"] == ".3;.7"

    def test_equals_in_unquoted_value(self):
        """Only the first '=' of a tag separates name from value."""
        assert parse_tags("<ID=a=b>") == {"ID": "a=b"}

    def test_trailing_comma_is_ignored(self):
        """A trailing comma should not create an extra tag."""
        assert parse_tags("<ID=GT,Number=1,>") == {"ID": "GT", "Number": "1"}

    def test_empty_list(self):
        """'<>' should parse to no tags."""
        assert parse_tags("<>") == {}

    def test_declaration_order_is_kept(self):
        """Tags should come back in the order they were written."""
        assert list(parse_tags("<b=1,a=2,c=3>")) == ["b", "a", "c"]

    def test_empty_quoted_value(self):
        """An empty quoted value should parse to an empty string."""
        assert parse_tags('<ID=X,Description="">')["Description"] == ""

    @pytest.mark.parametrize(
        "text",
        [
            "ID=1>",
            "<ID=1",
            '<ID=X,Description="unterminated>',
        ],
    )
    def test_malformed(self, text):
        """Malformed tag lists should raise GrammarError."""
        with pytest.raises(GrammarError):
            parse_tags(text)

    def test_token_without_key_continues_value(self):
        """A bare token after a comma should extend the previous value."""
        assert parse_tags("<ID=1,flag>") == {"ID": "1,flag"}

    def test_unquoted_value_list(self):
        """An unquoted bracketed list should be kept as one value."""
        tags = parse_tags("<ID=Assay,Type=String,Number=.,Values=[WholeGenome, Exome]>")
        assert tags["Values"] == "[WholeGenome, Exome]"
        assert list(tags) == ["ID", "Type", "Number", "Values"]

    def test_empty_tag_name_dropped(self):
        """A tag with an empty name should be ignored."""
        assert parse_tags("<=1,ID=X>") == {"ID": "X"}

    def test_grammar_error_is_value_error(self):
        """GrammarError should be catchable as ValueError."""
        with pytest.raises(ValueError):
            parse_tags("no brackets")


class TestFormatTags:
    """Tests for format_tags and quote_value."""

    def test_quote_value_escapes(self):
        """Quotes and backslashes should be escaped."""
        assert quote_value('a "b" \\c') == '"a \\"b\\" \\\\c"'

    def test_unquoted_keys(self):
        """Keys listed as unquoted should be written bare."""
        out = format_tags([("ID", "DP"), ("Description", "Depth")], unquoted=["ID"])
        assert out == '<ID=DP,Description="Depth">'

    def test_everything_quoted_by_default(self):
        """Without an unquoted set every value is quoted."""
        assert format_tags([("ID", "x")]) == '<ID="x">'


tag_names = st.text(
    alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_",
    min_size=1,
    max_size=10,
)
tag_values = st.text(
    alphabet=st.characters(exclude_categories=("Cs",), exclude_characters="\n\r"),
    max_size=30,
)


class TestTagRoundTrip:
    """Property-based tests using hypothesis."""

    @given(st.dictionaries(tag_names, tag_values, max_size=6))
    def test_quoted_round_trip(self, tags):
        """Any quoted tag list should parse back to the same mapping."""
        assert parse_tags(format_tags(tags.items())) == tags
