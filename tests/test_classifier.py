import pytest

from scoped_nl2sql.models.template import OperationType
from scoped_nl2sql.sql.classifier import classify_operation


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("select * from Users", OperationType.SELECT),
        ("  INSERT INTO Users (Name) VALUES (@name)", OperationType.INSERT),
        ("UPDATE Users SET x=1", OperationType.UPDATE),
        ("DELETE FROM Users WHERE id=1", OperationType.DELETE),
        ("CREATE TABLE T (id INT)", OperationType.UNKNOWN),
        ("\n\tSeLeCt 1", OperationType.SELECT),
        ("/* audit */ DELETE FROM Users", OperationType.DELETE),
        ("-- note\nUPDATE Users SET x = 1", OperationType.UPDATE),
        ("WITH cte AS (SELECT 1) SELECT * FROM cte", OperationType.UNKNOWN),
        ("(SELECT 1)", OperationType.UNKNOWN),
        ("SELECTED", OperationType.UNKNOWN),
    ],
)
def test_classifies_by_leading_keyword(sql, expected):
    assert classify_operation(sql) is expected


@pytest.mark.parametrize("sql", [None, "", "   ", "/* only a comment */", "/* open"])
def test_never_raises_on_degenerate_input(sql):
    assert classify_operation(sql) is OperationType.UNKNOWN


def test_unterminated_literal_is_unknown():
    assert classify_operation("SELECT 'open") is OperationType.UNKNOWN


@pytest.mark.parametrize("dialect", ["mysql", "sqlite"])
def test_classifies_in_other_dialects(dialect):
    assert classify_operation("DELETE FROM T", dialect=dialect) is OperationType.DELETE


def test_mysql_hash_comment_is_skipped():
    assert classify_operation("# note\nSELECT 1", dialect="mysql") is OperationType.SELECT
