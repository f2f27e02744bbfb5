from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

from perfmon.engine.filters import (
    MATCH_ALL,
    Clause,
    ClauseKind,
    FilterSpec,
    Predicate,
    compile_filters,
    exact_api_predicate,
    is_error,
    is_success,
)


def _record(**overrides):
    fields = dict(
        id="r1",
        api_name="get-static-data",
        status_code=200,
        latency_ms=70,
        detail="Static data retrieved",
        requested_at=datetime(2024, 6, 18, 11, 45, 0),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_empty_spec_compiles_to_match_all():
    assert compile_filters(None) == MATCH_ALL
    assert compile_filters(FilterSpec()) == MATCH_ALL
    assert len(MATCH_ALL) == 0
    assert MATCH_ALL.matches(_record(status_code=302))


def test_wildcards_add_no_clauses():
    spec = FilterSpec(search_text="   ", status_class="all", api_name="all")
    assert compile_filters(spec) == MATCH_ALL


def test_status_keywords_map_to_band_clauses():
    assert compile_filters(FilterSpec(status_class="success")).kinds() == (ClauseKind.STATUS_SUCCESS,)
    assert compile_filters(FilterSpec(status_class="ERROR")).kinds() == (ClauseKind.STATUS_ERROR,)


def test_numeric_status_compiles_to_exact_match():
    predicate = compile_filters(FilterSpec(status_class="404"))
    assert predicate.clauses == (Clause(ClauseKind.STATUS_EQ, (404,)),)

    assert compile_filters(FilterSpec(status_class=503)).clauses == (Clause(ClauseKind.STATUS_EQ, (503,)),)


def test_unrecognized_status_is_ignored():
    assert compile_filters(FilterSpec(status_class="teapot")) == MATCH_ALL


def test_clause_order_is_fixed():
    spec = FilterSpec(
        search_text="sync",
        status_class="error",
        api_name="event-stagedb-sync",
        start=datetime(2024, 6, 1),
        end=datetime(2024, 6, 30),
    )
    assert compile_filters(spec).kinds() == (
        ClauseKind.SEARCH,
        ClauseKind.STATUS_ERROR,
        ClauseKind.API_EQ,
        ClauseKind.REQUESTED_FROM,
        ClauseKind.REQUESTED_TO,
    )


def test_compilation_is_idempotent():
    spec = FilterSpec.from_raw(search="static", status="success", start_date="2024-06-18")
    assert compile_filters(spec) == compile_filters(spec)


def test_from_raw_drops_malformed_values():
    spec = FilterSpec.from_raw(
        search="",
        status="bogus",
        api_name=" all ",
        start_date="not-a-date",
        end_date="2024-13-45",
    )
    assert spec == FilterSpec()


def test_from_raw_date_only_end_covers_the_whole_day():
    spec = FilterSpec.from_raw(start_date="2024-06-18", end_date="2024-06-18")
    assert spec.start == datetime(2024, 6, 18, 0, 0, 0)
    assert spec.end == datetime(2024, 6, 18, 23, 59, 59, 999999)

    predicate = compile_filters(spec)
    assert predicate.matches(_record(requested_at=datetime(2024, 6, 18, 23, 30)))
    assert not predicate.matches(_record(requested_at=datetime(2024, 6, 19, 0, 0)))


def test_from_raw_converts_offsets_to_utc():
    spec = FilterSpec.from_raw(start_date="2024-06-18T12:00:00+02:00")
    assert spec.start == datetime(2024, 6, 18, 10, 0, 0)


def test_search_matches_api_name_or_detail_case_insensitively():
    predicate = compile_filters(FilterSpec(search_text="STATIC"))
    assert predicate.matches(_record())
    assert predicate.matches(_record(api_name="other", detail="static cache hit"))
    assert not predicate.matches(_record(api_name="other", detail="nothing here"))


def test_status_bands():
    assert is_success(200) and is_success(299)
    assert not is_success(300) and not is_success(199)
    assert is_error(400) and is_error(503)
    assert not is_error(302)

    success = compile_filters(FilterSpec(status_class="success"))
    error = compile_filters(FilterSpec(status_class="error"))
    redirect = _record(status_code=302)
    assert not success.matches(redirect)
    assert not error.matches(redirect)


def test_clauses_are_and_ed():
    predicate = compile_filters(FilterSpec(status_class="error", api_name="get-static-data"))
    assert not predicate.matches(_record(status_code=500, api_name="event-stagedb-sync"))
    assert not predicate.matches(_record(status_code=200))
    assert predicate.matches(_record(status_code=500))


def test_api_name_is_exact():
    predicate = compile_filters(FilterSpec(api_name="get-static"))
    assert not predicate.matches(_record())


def test_describe_echoes_applied_filters():
    predicate = compile_filters(
        FilterSpec(search_text="sync", status_class=500, start=datetime(2024, 6, 18, 8, 0, 0))
    )
    assert predicate.describe() == {
        "search": "sync",
        "status": "500",
        "start_date": "2024-06-18T08:00:00Z",
    }
    assert Predicate().describe() == {}


def test_out_of_range_status_codes_are_ignored():
    for raw in ("99999999999999999999", "99", "600", "-1"):
        assert compile_filters(FilterSpec.from_raw(status=raw)) == MATCH_ALL
    assert compile_filters(FilterSpec(status_class=10**30)) == MATCH_ALL
    assert compile_filters(FilterSpec(status_class="599")).clauses == (Clause(ClauseKind.STATUS_EQ, (599,)),)


def test_search_folds_unicode_case():
    predicate = compile_filters(FilterSpec(search_text="échec"))
    assert predicate.matches(_record(detail="ÉCHEC total"))
    assert compile_filters(FilterSpec(search_text="STRASSE")).matches(_record(api_name="Straße-lookup"))


def test_exact_api_predicate_treats_all_literally():
    predicate = exact_api_predicate(" all ")
    assert predicate.clauses == (Clause(ClauseKind.API_EQ, ("all",)),)
    assert predicate.matches(_record(api_name="all"))
    assert not predicate.matches(_record())
