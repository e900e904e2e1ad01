from __future__ import annotations

from pm_command_center.domain.issues import GitHubRawIssue, IssueState, Platform, UnifiedIssue
from pm_command_center.estimation.engine import (
    BRIEF_TEXT_WARNING,
    INTEGRATION_WARNING,
    NO_HISTORY_WARNING,
    SECURITY_WARNING,
    EstimationEngine,
    estimate,
)
from pm_command_center.estimation.similarity import HistoricalIssue


def test_keyword_only_estimate_for_high_complexity_story() -> None:
    story = "Refactor the distributed cache architecture"
    assert len(story) == 43

    result = estimate(story, "", [], [])

    assert result.points == 13
    assert result.label == "Epic"
    assert result.estimated_days == 10
    assert result.confidence == 55
    assert "High complexity indicators" in result.based_on
    assert NO_HISTORY_WARNING in result.warnings
    # 43 characters of title plus separators is still below the 50 character threshold
    assert BRIEF_TEXT_WARNING in result.warnings
    assert result.similar_issues == ()


def test_long_description_suppresses_brief_warning() -> None:
    result = estimate(
        "Refactor the distributed cache architecture",
        "Move the cache behind a consistent hashing ring so nodes can be added online.",
    )
    assert BRIEF_TEXT_WARNING not in result.warnings


def test_strong_historical_matches_average_top_three() -> None:
    title = "Implement password reset email flow"
    engine = EstimationEngine()
    engine.load_historical_data(
        [
            HistoricalIssue(title=title, story_points=5),
            HistoricalIssue(title=title, story_points=8),
            HistoricalIssue(title=title, story_points=8),
        ]
    )

    result = engine.estimate(title)

    assert result.points == 8
    assert result.confidence == 85
    assert result.based_on == "3 similar completed stories"
    assert len(result.similar_issues) == 3
    assert NO_HISTORY_WARNING not in result.warnings


def test_weak_match_blends_with_keyword_analysis() -> None:
    engine = EstimationEngine()
    engine.load_historical_data([HistoricalIssue(title="password reset page")])

    result = engine.estimate("Implement password reset email flow")

    # (3 from the default historical points + 3 from one medium keyword) / 2
    assert result.points == 3
    assert result.confidence == 60
    assert result.based_on == "1 related stories + complexity analysis"


def test_integration_warning_fires_for_small_estimates() -> None:
    title = "Small integration tweak for payments webhook"
    engine = EstimationEngine()
    engine.load_historical_data([HistoricalIssue(title=title, story_points=2)] * 3)

    result = engine.estimate(title)

    assert result.points == 2
    assert INTEGRATION_WARNING in result.warnings


def test_security_warning_fires_only_for_small_estimates() -> None:
    title = "Security headers for static site"
    engine = EstimationEngine()
    engine.load_historical_data([HistoricalIssue(title=title, story_points=2)] * 3)

    small = engine.estimate(title)
    assert small.points == 2
    assert SECURITY_WARNING in small.warnings

    large = estimate("Security review of the payment service")
    assert large.points >= 5
    assert SECURITY_WARNING not in large.warnings


def test_raw_platform_history_is_normalized_first() -> None:
    title = "Implement password reset email flow"
    raw = GitHubRawIssue(
        payload={
            "number": 3,
            "title": title,
            "state": "closed",
            "labels": [{"name": "5 points"}],
            "created_at": "2024-01-01T00:00:00Z",
            "closed_at": "2024-01-03T00:00:00Z",
        }
    )

    result = estimate(title, "", [], [raw, raw, raw])

    assert result.points == 5
    assert result.confidence == 85
    assert [s.points for s in result.similar_issues] == [5.0, 5.0, 5.0]


def test_learns_from_unified_issues_and_reports_statistics() -> None:
    issues = [
        UnifiedIssue(
            id=f"github-{n}",
            external_id=str(n),
            platform=Platform.GITHUB,
            title=f"Story {n}",
            state=IssueState.CLOSED,
            story_points=points,
        )
        for n, points in enumerate((3.0, 5.0, 5.0, None))
    ]
    engine = EstimationEngine()
    engine.learn_from_history(issues)
    stats = engine.statistics()

    assert engine.history_size == 4
    assert stats.total_issues == 3
    assert round(stats.average_points, 2) == 4.33
    assert stats.points_distribution == {3.0: 1, 5.0: 2}


def test_batch_estimate_keeps_story_order() -> None:
    engine = EstimationEngine()
    results = engine.batch_estimate(
        [
            {"title": "Fix typo in footer"},
            {"title": "Refactor architecture", "labels": ["backend"]},
        ]
    )

    assert [title for title, _ in results] == ["Fix typo in footer", "Refactor architecture"]
    assert results[0][1].points == 1
    assert results[1][1].points == 13
    assert EstimationEngine().statistics().total_issues == 0
