import json
from datetime import timedelta
from pathlib import Path

import pytest

from mf_engine.models import ModeEstimate, TravelMode, TravelStatus, TravelTimeResult
from mf_engine.scoring import (
    BONUS_MAX,
    DIMENSION_MAX,
    DIMENSION_ORDER,
    MatchScorer,
    ScoringConfigError,
    SubScoreStatus,
    default_scoring_config,
    load_scoring_config,
    scoring_config_sha256,
)
from mf_engine.scoring.scorers import (
    score_completeness,
    score_lifestyle,
    score_opt_in,
    score_role,
    score_travel,
)

REPO_ROOT = Path(__file__).resolve().parents[1]


def _travel(minutes: float) -> TravelTimeResult:
    return TravelTimeResult(
        modes={TravelMode.WALKING: ModeEstimate(minutes * 60.0, f"{minutes:g} min on foot")},
        status=TravelStatus.OK,
    )


@pytest.fixture
def scorer(now) -> MatchScorer:
    return MatchScorer(clock=lambda: now)


def test_missing_embeddings_and_travel_still_produce_full_breakdown(scorer, make_profile) -> None:
    viewer = make_profile("viewer")
    candidate = make_profile("cand")

    result = scorer.score(viewer, candidate, None)
    breakdown = result.breakdown

    assert set(breakdown.sub_scores) == set(DIMENSION_ORDER)
    assert breakdown.sub_scores["semantic"].points == 0
    assert breakdown.sub_scores["semantic"].status == SubScoreStatus.MISSING_INPUT
    assert breakdown.sub_scores["travel"].points == 0
    assert breakdown.sub_scores["travel"].status == SubScoreStatus.MISSING_INPUT
    others = sum(breakdown.sub_scores[name].points for name in DIMENSION_ORDER if name not in ("semantic", "travel"))
    assert result.probability == pytest.approx(others)
    assert result.probability > 0


def test_probability_is_clamped_sum_and_sub_scores_respect_caps(scorer, make_profile, now) -> None:
    viewer = make_profile("viewer", opt_in_enabled=True, opt_in_value="yes")
    variants = [
        make_profile("a"),
        make_profile("b", role="top", interests=[], lifestyle={}, last_active=None, photos=[], bio=None),
        make_profile("c", interests=["climbing", "vinyl", "coffee", "tea"], soft_limits=["coffee"]),
        make_profile("d", hard_limits=["climbing"], opt_in_enabled=True, opt_in_value="yes"),
        make_profile("e", last_active=now - timedelta(days=30), opt_in_enabled=True, opt_in_value="no"),
        make_profile("f", role="flexible", relationship_status="open", time_horizon="now"),
    ]
    embeddings = [[1.0, 0.0], [0.6, 0.8], [-1.0, 0.0], None]
    for index, candidate in enumerate(variants):
        for minutes in (None, 3, 45, 500):
            travel = _travel(minutes) if minutes is not None else None
            result = scorer.score(
                viewer,
                candidate,
                travel,
                viewer_embedding=[1.0, 0.0],
                candidate_embedding=embeddings[index % len(embeddings)],
            )
            breakdown = result.breakdown
            total = 0.0
            for name in DIMENSION_ORDER:
                sub = breakdown.sub_scores[name]
                assert 0.0 <= sub.points <= DIMENSION_MAX[name]
                total += sub.points
            if breakdown.bonus.status == SubScoreStatus.SCORED:
                assert 0.0 <= breakdown.bonus.points <= BONUS_MAX["opt_in"]
                total += breakdown.bonus.points
            assert result.probability == pytest.approx(max(0.0, min(100.0, total)))


@pytest.mark.parametrize(
    "minutes,points",
    [(1, 20), (5, 20), (12, 18), (30, 15), (59, 10), (120, 5), (121, 2)],
)
def test_travel_thresholds(minutes, points) -> None:
    assert score_travel(_travel(minutes), default_scoring_config()).points == points


def test_travel_uses_fastest_mode() -> None:
    travel = TravelTimeResult(
        modes={
            TravelMode.WALKING: ModeEstimate(3600.0, "60 min on foot"),
            TravelMode.DRIVING: ModeEstimate(240.0, "4 min by cab"),
        }
    )
    sub = score_travel(travel, default_scoring_config())
    assert sub.points == 20
    assert sub.details["mode"] == "driving"


def test_empty_travel_result_scores_zero() -> None:
    sub = score_travel(TravelTimeResult.empty(TravelStatus.UPSTREAM_ERROR), default_scoring_config())
    assert sub.points == 0
    assert sub.status == SubScoreStatus.MISSING_INPUT


def test_role_matrix_flexible_and_missing(make_profile) -> None:
    config = default_scoring_config()
    assert score_role(make_profile("a", role="top"), make_profile("b", role="bottom"), config).points == 15
    assert score_role(make_profile("a", role="Vers Top"), make_profile("b", role="vers-bottom"), config).points == 15
    assert score_role(make_profile("a", role="open"), make_profile("b", role="top"), config).points == 12
    missing = score_role(make_profile("a", role=None), make_profile("b", role="top"), config)
    assert missing.points == 0
    assert missing.status == SubScoreStatus.MISSING_INPUT
    unlisted = score_role(make_profile("a", role="top"), make_profile("b", role="switch"), config)
    assert unlisted.points == 0
    assert unlisted.details["rule"] == "unlisted_pair"


def test_interest_overlap_and_conflicts(scorer, make_profile) -> None:
    viewer = make_profile("v", interests=["climbing", "vinyl", "coffee", "tea"])
    full = scorer.score(viewer, make_profile("c", interests=["climbing", "vinyl", "coffee", "tea"]), None)
    assert full.breakdown.points("interests") == 15

    soft = scorer.score(
        viewer,
        make_profile("c", interests=["climbing", "vinyl", "coffee", "tea"], soft_limits=["tea"]),
        None,
    )
    assert soft.breakdown.points("interests") == 12
    assert soft.breakdown.sub_scores["interests"].details["soft_conflicts"] == ["tea"]

    hard = scorer.score(viewer, make_profile("c", hard_limits=["vinyl"]), None)
    assert hard.breakdown.points("interests") == 0
    assert hard.breakdown.sub_scores["interests"].details["hard_conflicts"] == ["vinyl"]


def test_intent_alignment(scorer, make_profile) -> None:
    viewer = make_profile("v", looking_for=["dates", "friends", "chat", "hookups"])
    candidate = make_profile("c", looking_for=["dates", "friends", "chat", "hookups"], time_horizon="now")
    sub = scorer.score(viewer, candidate, None).breakdown.sub_scores["intent"]
    # 6 (capped looking-for) + 3 (same status) + 2 (adjacent horizon)
    assert sub.points == 11


def test_activity_recency(scorer, make_profile, now) -> None:
    viewer = make_profile("v")
    assert scorer.score(viewer, make_profile("c", last_active=now - timedelta(minutes=2)), None).breakdown.points(
        "activity"
    ) == 8
    assert scorer.score(viewer, make_profile("c", last_active=now - timedelta(hours=3)), None).breakdown.points(
        "activity"
    ) == 5
    assert scorer.score(viewer, make_profile("c", last_active=now - timedelta(days=60)), None).breakdown.points(
        "activity"
    ) == 1
    assert scorer.score(viewer, make_profile("c", last_active=None), None).breakdown.points("activity") == 0


def test_lifestyle_exact_matches_and_scenes(make_profile) -> None:
    result = score_lifestyle(make_profile("a"), make_profile("b"))
    assert result.points == 8.0
    assert result.details["matched"] == ["smoking", "drinking", "fitness"]
    assert result.details["shared_scenes"] == ["queer", "techno"]


def test_lifestyle_partial_drinking_needs_occasional_on_both_sides(make_profile) -> None:
    viewer = make_profile("a", lifestyle={"smoking": "social", "drinking": "occasional drinker"})
    candidate = make_profile("b", lifestyle={"smoking": "sometimes", "drinking": "Occasionally"})
    result = score_lifestyle(viewer, candidate)
    assert result.points == 1.0
    assert result.details["matched"] == ["drinking:partial"]

    viewer = make_profile("a", lifestyle={"drinking": "social"})
    candidate = make_profile("b", lifestyle={"drinking": "sometimes"})
    result = score_lifestyle(viewer, candidate)
    assert result.points == 0.0
    assert result.status == SubScoreStatus.SCORED


def test_lifestyle_without_flags_is_missing(make_profile) -> None:
    result = score_lifestyle(make_profile("a", lifestyle={}), make_profile("b", lifestyle={}))
    assert result.status == SubScoreStatus.MISSING_INPUT
    assert result.points == 0


def test_completeness_caps_at_eight(make_profile) -> None:
    full = make_profile("c", bio="x" * 120, tags=["a"])
    assert score_completeness(full).points == 8
    empty = make_profile(
        "e",
        photos=[],
        bio=None,
        city=None,
        lat=None,
        lng=None,
        interests=[],
        tags=[],
        looking_for=[],
        verified=False,
        role=None,
    )
    assert score_completeness(empty).points == 0


def test_opt_in_bonus_only_when_both_opted_in(make_profile) -> None:
    yes = make_profile("a", opt_in_enabled=True, opt_in_value="yes")
    assert score_opt_in(yes, make_profile("b", opt_in_enabled=True, opt_in_value="yes")).points == 3
    assert score_opt_in(yes, make_profile("b", opt_in_enabled=True, opt_in_value="flexible")).points == 2
    conflict = score_opt_in(yes, make_profile("b", opt_in_enabled=True, opt_in_value="no"))
    assert conflict.points == 0
    assert conflict.status == SubScoreStatus.SCORED
    off = score_opt_in(yes, make_profile("b", opt_in_enabled=False, opt_in_value="yes"))
    assert off.status == SubScoreStatus.NOT_APPLICABLE


def test_breakdown_to_dict_marks_bonus_absent(scorer, make_profile) -> None:
    payload = scorer.score(make_profile("v"), make_profile("c"), _travel(4)).breakdown.to_dict()
    assert payload["travel"] == 20
    assert payload["optInBonus"] is None
    assert payload["status"]["optInBonus"] == "not_applicable"
    assert payload["details"]["travel"]["mode"] == "walking"


def test_repo_scoring_config_matches_default() -> None:
    loaded = load_scoring_config(REPO_ROOT / "config" / "scoring.json")
    assert scoring_config_sha256(loaded) == scoring_config_sha256(default_scoring_config())
    assert loaded.version == "1.0"


def test_load_scoring_config_errors(tmp_path) -> None:
    with pytest.raises(ScoringConfigError, match="missing"):
        load_scoring_config(tmp_path / "nope.json")

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{", encoding="utf-8")
    with pytest.raises(ScoringConfigError, match="invalid scoring config JSON"):
        load_scoring_config(bad_json)

    payload = default_scoring_config().model_dump(mode="json")
    payload["role_matrix"]["top"]["bottom"] = 40
    over_cap = tmp_path / "over.json"
    over_cap.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ScoringConfigError, match="invalid scoring config"):
        load_scoring_config(over_cap)

    payload = default_scoring_config().model_dump(mode="json")
    payload["field_weights"] = {"bio": 1.0}
    wrong_keys = tmp_path / "keys.json"
    wrong_keys.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ScoringConfigError):
        load_scoring_config(wrong_keys)
