"""Chip timing from the fixture difficulty table.

This module scores every gameweek in an analysis window for the three chips
whose value depends on fixture spread, and recommends the best one for each.
All scoring is a pure function of the difficulty table and the set of teams
the squad owns players from.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from defcon.fixtures import code_sort_key
from defcon.state import ChipRecommendation, ChipType, OpportunityScore, TeamCode
from planner.difficulty import DifficultyTable, MAX_DIFFICULTY
from utils import config

logger = logging.getLogger(__name__)


class ChipOptimizer:
    """Recommends chip gameweeks from fixture difficulty.

    Chip criteria:
    - Free Hit: single gameweek with the most easy fixtures (FDR < 2.5)
      from teams the squad does not own
    - Wildcard: the gameweek before the most teams start a good 4-GW run
      (average FDR < 2.8)
    - Bench Boost: gameweek where most owned teams have FDR < 3, lower
      mean FDR breaking ties

    Ties go to the earliest gameweek. Confidence is always in [0, 1].
    """

    def __init__(self, fixture_difficulty: DifficultyTable,
                 owned_teams: Optional[Iterable[TeamCode]] = None):
        """Initialize chip optimizer.

        Args:
            fixture_difficulty: Team -> TeamDifficulty for the window
            owned_teams: Teams the squad has players from
        """
        self.fixture_difficulty = fixture_difficulty
        self.owned_teams = set(owned_teams or ())

        # Chip thresholds from the current config
        self.fh_easy_fdr = config.FREE_HIT['easy_fdr']
        self.fh_full_confidence = config.FREE_HIT['full_confidence_count']  # missed fixtures for 100%
        self.wc_good_run_fdr = config.WILDCARD['good_run_fdr']
        self.wc_lookahead = config.WILDCARD['lookahead']
        self.wc_full_confidence = config.WILDCARD['full_confidence_count']  # teams on a good run for 100%
        self.bb_good_fdr = config.BENCH_BOOST['good_fdr']

    # -------------------------------------------------------------------------
    # Free Hit
    # -------------------------------------------------------------------------

    def score_single_period(self, start_period: int, end_period: int) -> List[OpportunityScore]:
        """Score each gameweek by easy fixtures from teams not owned."""
        scores = []
        for gw in range(start_period, end_period + 1):
            easy_fixtures = 0
            missed = 0
            for team, data in self.fixture_difficulty.items():
                entry = data.fixtures.get(gw)
                if entry is None or entry.difficulty >= self.fh_easy_fdr:
                    continue
                easy_fixtures += 1
                if team not in self.owned_teams:
                    missed += 1

            scores.append(OpportunityScore(
                period=gw,
                score=missed,
                confidence=min(missed / self.fh_full_confidence, 1.0),
                supporting_counts={'easyFixtures': easy_fixtures, 'missedOpportunities': missed},
            ))
        return scores

    def analyze_free_hit(self, start_period: int, end_period: int) -> ChipRecommendation:
        scores = self.score_single_period(start_period, end_period)
        best = _pick_best(scores)
        if best is None:
            return _empty_recommendation(ChipType.FREE_HIT, start_period)

        counts = best.supporting_counts
        reasoning = (
            f"GW{best.period} has {counts['missedOpportunities']} easy fixtures from teams you "
            f"don't own, out of {counts['easyFixtures']} total easy fixtures."
        )
        return ChipRecommendation(ChipType.FREE_HIT, best.period, best.confidence,
                                  dict(counts), tuple(scores), reasoning)

    # -------------------------------------------------------------------------
    # Wildcard
    # -------------------------------------------------------------------------

    def score_lookahead_window(self, start_period: int, end_period: int) -> List[OpportunityScore]:
        """Score each pivot gameweek by teams with a good run in the next gameweeks.

        Pivots stop ``wc_lookahead - 1`` gameweeks before the end of the window
        so every pivot has a meaningful run to look at.
        """
        scores = []
        last_pivot = end_period - (self.wc_lookahead - 1)
        for gw in range(start_period, last_pivot + 1):
            window_end = min(gw + self.wc_lookahead, end_period)
            good_runs = 0
            total_difficulty = 0.0

            for data in self.fixture_difficulty.values():
                run = [data.fixtures[p].difficulty for p in range(gw + 1, window_end + 1)
                       if p in data.fixtures]
                if not run:
                    continue
                avg = sum(run) / len(run)
                total_difficulty += avg
                if avg < self.wc_good_run_fdr:
                    good_runs += 1

            # Teams without a fixture in the run still count in the denominator
            team_count = len(self.fixture_difficulty)
            mean_difficulty = total_difficulty / team_count if team_count else MAX_DIFFICULTY
            scores.append(OpportunityScore(
                period=gw,
                score=good_runs,
                confidence=min(good_runs / self.wc_full_confidence, 1.0),
                supporting_counts={'teamsWithGoodRun': good_runs, 'avgDifficulty': mean_difficulty},
            ))
        return scores

    def analyze_wildcard(self, start_period: int, end_period: int) -> ChipRecommendation:
        scores = self.score_lookahead_window(start_period, end_period)
        best = _pick_best(scores)
        if best is None:
            return _empty_recommendation(ChipType.WILDCARD, start_period)

        reasoning = (
            f"Use Wildcard before GW{best.period} to set up for a favorable run. "
            f"{best.supporting_counts['teamsWithGoodRun']} teams have good fixtures in the "
            f"following {self.wc_lookahead} gameweeks."
        )
        return ChipRecommendation(ChipType.WILDCARD, best.period, best.confidence,
                                  dict(best.supporting_counts), tuple(scores), reasoning)

    # -------------------------------------------------------------------------
    # Bench Boost
    # -------------------------------------------------------------------------

    def score_owned_coverage(self, start_period: int, end_period: int) -> List[OpportunityScore]:
        """Score each gameweek by owned teams with a good fixture."""
        owned_count = len(self.owned_teams)
        scores = []
        for gw in range(start_period, end_period + 1):
            difficulties = []
            good = 0
            for team in sorted(self.owned_teams, key=code_sort_key):
                data = self.fixture_difficulty.get(team)
                entry = data.fixtures.get(gw) if data else None
                if entry is None:
                    continue
                difficulties.append(entry.difficulty)
                if entry.difficulty < self.bb_good_fdr:
                    good += 1

            avg = sum(difficulties) / len(difficulties) if difficulties else MAX_DIFFICULTY
            confidence = min(good / owned_count, 1.0) if owned_count else 0.0
            scores.append(OpportunityScore(
                period=gw,
                score=good,
                confidence=confidence,
                supporting_counts={
                    'goodFixtures': good,
                    'fixtureCount': len(difficulties),
                    'ownedTeams': owned_count,
                    'avgDifficulty': avg,
                },
            ))
        return scores

    def analyze_bench_boost(self, start_period: int, end_period: int) -> ChipRecommendation:
        scores = self.score_owned_coverage(start_period, end_period)
        best = _pick_best(scores, tie_break='avgDifficulty')
        if best is None:
            return _empty_recommendation(ChipType.BENCH_BOOST, start_period)

        counts = best.supporting_counts
        reasoning = (
            f"GW{best.period} has the best fixture spread for your current team. "
            f"{counts['goodFixtures']} of your {counts['ownedTeams']} teams have favorable "
            f"matchups (FDR < {self.bb_good_fdr:g}), average FDR {counts['avgDifficulty']:.2f}."
        )
        return ChipRecommendation(ChipType.BENCH_BOOST, best.period, best.confidence,
                                  dict(counts), tuple(scores), reasoning)

    def recommend_chips(self, start_period: int, end_period: int) -> Dict[ChipType, ChipRecommendation]:
        """Best gameweek for each chip over the window."""
        recommendations = {
            ChipType.FREE_HIT: self.analyze_free_hit(start_period, end_period),
            ChipType.WILDCARD: self.analyze_wildcard(start_period, end_period),
            ChipType.BENCH_BOOST: self.analyze_bench_boost(start_period, end_period),
        }
        for chip, rec in recommendations.items():
            logger.debug(f"{chip.value}: GW{rec.best_period} (confidence {rec.confidence:.0%})")
        return recommendations


def _pick_best(scores: List[OpportunityScore],
               tie_break: Optional[str] = None) -> Optional[OpportunityScore]:
    """Highest score wins; first gameweek wins ties.

    With ``tie_break`` set, an equal score with a strictly lower value of that
    supporting count also wins.
    """
    if not scores:
        return None

    best = scores[0]
    best_key = _rank(best, tie_break)
    for candidate in scores[1:]:
        key = _rank(candidate, tie_break)
        if key > best_key:
            best, best_key = candidate, key
    return best


def _rank(score: OpportunityScore, tie_break: Optional[str]) -> Tuple[float, float]:
    secondary = -score.supporting_counts.get(tie_break, 0.0) if tie_break else 0.0
    return (score.score, secondary)


def _empty_recommendation(chip: ChipType, start_period: int) -> ChipRecommendation:
    return ChipRecommendation(chip, start_period, 0.0, {}, (), "No gameweeks to analyse in the window.")
