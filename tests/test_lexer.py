import pytest
from sqlglot.tokens import TokenType

from scoped_nl2sql.sql.lexer import scan_sql
from scoped_nl2sql.sql.parser import PLACEHOLDER_DIALECTS


def test_placeholders_are_collected_in_order():
    scan = scan_sql("SELECT * FROM T WHERE A = @first AND B = @second")
    assert scan.placeholders == ("first", "second")


def test_placeholder_keeps_source_spelling_of_keyword_names():
    scan = scan_sql("SELECT * FROM Documents WHERE UpdatedAt >= @date")
    assert scan.placeholders == ("date",)


@pytest.mark.parametrize("dialect", PLACEHOLDER_DIALECTS)
def test_placeholders_in_supported_dialects(dialect):
    scan = scan_sql("SELECT * FROM T WHERE A = @first", dialect=dialect)
    assert scan.placeholders == ("first",)
    assert scan.is_well_formed


def test_separator_inside_string_is_literal():
    scan = scan_sql("SELECT 'a;b' FROM T")
    assert scan.separators == ()
    assert scan.tokens[1].token_type is TokenType.STRING
    assert scan.tokens[1].text == "a;b"


def test_doubled_quote_escape_stays_in_string():
    scan = scan_sql("SELECT 'it''s' AS x")
    assert scan.tokens[1].text == "it's"
    assert scan.is_well_formed


def test_placeholder_inside_string_is_not_a_placeholder():
    assert scan_sql("SELECT '@name'").placeholders == ()


def test_system_variables_are_not_placeholders():
    assert scan_sql("SELECT @@ROWCOUNT").placeholders == ()


def test_words_skip_literals_and_placeholders():
    scan = scan_sql("SELECT 'DROP' FROM T WHERE A = @exec")
    assert "DROP" not in scan.words
    assert "EXEC" not in scan.words
    assert scan.words[:3] == ("SELECT", "FROM", "T")


def test_literals_hold_string_and_number_values():
    scan = scan_sql("SELECT * FROM T WHERE A = 'x' AND B = 42")
    assert scan.literals == frozenset({"x", "42"})


def test_comments_do_not_become_tokens():
    scan = scan_sql("/* lead */ SELECT 1 -- trailing")
    assert [token.text for token in scan.tokens] == ["SELECT", "1"]
    assert scan.line_comment


def test_block_comment_is_not_a_line_comment():
    assert not scan_sql("/* lead */ SELECT 1").line_comment


def test_markers_inside_block_comment_are_not_line_comments():
    assert not scan_sql("/* C# -- note */ SELECT 1").line_comment
    assert not scan_sql("/* a /* -- b */ c */ SELECT 1").line_comment
    assert scan_sql("/* lead */ SELECT 1 -- /* x */").line_comment


def test_hash_comment_in_mysql():
    assert scan_sql("SELECT 1 # note", dialect="mysql").line_comment


def test_nested_block_comment_in_tsql():
    scan = scan_sql("/* outer /* inner */ still comment */ SELECT 1")
    assert scan.tokens[0].token_type is TokenType.SELECT
    assert scan.is_well_formed


def test_structural_defects_are_flagged():
    assert scan_sql("SELECT 'open").error is not None
    assert scan_sql("SELECT [col FROM T").error is not None
    assert scan_sql("SELECT 1 /* open").unterminated_comment
    assert scan_sql("SELECT 1 */").stray_comment_close
    assert scan_sql("SELECT [a;b] FROM T").is_well_formed


def test_tokenizer_error_leaves_no_tokens():
    scan = scan_sql("SELECT 'open")
    assert scan.tokens == ()
    assert not scan.is_well_formed
