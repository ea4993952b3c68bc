"""SQL built by the Postgres repository (compiled only; no database needed)."""

from sqlalchemy.dialects import postgresql

from storefinder.stores.sql_repository import any_term_query, text_search_statement


def test_any_term_query():
    assert any_term_query("Sushi  Bar!") == "sushi or bar"
    assert any_term_query("coffee or tea") == "coffee or tea"
    assert any_term_query("  !! ") == ""


def test_text_search_matches_any_term():
    stmt = text_search_statement("sushi bar", 5)
    compiled = stmt.compile(dialect=postgresql.dialect())
    sql = str(compiled)

    assert "websearch_to_tsquery" in sql
    assert "plainto_tsquery" not in sql
    assert "ts_rank" in sql
    assert "sushi or bar" in compiled.params.values()


def test_text_search_blank_query_builds_nothing():
    assert text_search_statement("   ", 5) is None
