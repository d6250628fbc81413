"""Human-readable recommendations derived from a HealthAnalysis.

The engine is a pure function of its input. Four passes run in a fixed
order and their lines are concatenated:

    1. hotspots          high/critical files that are also complex or busy
    2. statistics        category percentages, mean complexity, churn activity
    3. notable patterns  most stable, busiest and largest files, total LOC
    4. priorities        overall-score tiers and distribution-based actions

When every pass comes back empty a single "healthy" line is returned, so the
list is never empty.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..complexity import HIGH_COMPLEXITY_THRESHOLD
from ..math import round_half_up, safe_mean
from ..models import NO_HISTORY_DAYS, HealthAnalysis, RiskCategory, RiskScore

HIGH_CHURN_COMMITS = 5
LARGE_FILE_LOC = 500
MAX_HOTSPOT_MESSAGES = 3

DEFAULT_RECOMMENDATION = (
    "✅ Your codebase appears to be in good health! "
    "Keep up the good work with regular refactoring and code reviews."
)

_CATEGORY_ADVICE = {
    RiskCategory.CRITICAL: (
        "🚨 Critical files require immediate attention. "
        "Consider pair programming or code reviews for changes to these files."
    ),
    RiskCategory.HIGH: "⚠️ High-risk files should be prioritized for refactoring in upcoming sprints.",
    RiskCategory.MEDIUM: (
        "📝 Medium-risk files are good candidates for gradual improvement "
        "during regular development."
    ),
    RiskCategory.LOW: "✅ Low-risk files are in good shape. Use them as examples of good code structure.",
}


def _file_name(score: RiskScore) -> str:
    path = score.metrics.path.replace("\\", "/")
    return path.rsplit("/", 1)[-1] or path


def _percent(count: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(count / total * 100)


def average_complexity(scores: Sequence[RiskScore]) -> float:
    """Mean cyclomatic complexity over files that have one."""
    values = [s.metrics.cyclomatic_complexity for s in scores if s.metrics.cyclomatic_complexity > 0]
    return safe_mean(values)


class RecommendationsEngine:
    """Generates ordered recommendation strings for a health report."""

    def generate(self, analysis: HealthAnalysis) -> list[str]:
        recommendations: list[str] = []
        recommendations.extend(self.hotspot_recommendations(analysis))
        recommendations.extend(self.statistical_insights(analysis))
        recommendations.extend(self.notable_patterns(analysis))
        recommendations.extend(self.priority_recommendations(analysis))

        if not recommendations:
            recommendations.append(DEFAULT_RECOMMENDATION)

        return recommendations

    # ------------------------------------------------------------------
    # Hotspots
    # ------------------------------------------------------------------

    @staticmethod
    def find_hotspots(scores: Sequence[RiskScore]) -> list[RiskScore]:
        """Elevated-risk files that are also complex or frequently changed, riskiest first."""
        hotspots = [
            s
            for s in scores
            if s.category.is_elevated
            and (
                s.metrics.cyclomatic_complexity > HIGH_COMPLEXITY_THRESHOLD
                or s.metrics.churn.commit_count > HIGH_CHURN_COMMITS
            )
        ]
        return sorted(hotspots, key=lambda s: s.score, reverse=True)

    def hotspot_recommendations(self, analysis: HealthAnalysis) -> list[str]:
        hotspots = self.find_hotspots(analysis.risk_scores)
        if not hotspots:
            return []

        lines = []
        for hotspot in hotspots[:MAX_HOTSPOT_MESSAGES]:
            line = self._hotspot_message(hotspot)
            if line:
                lines.append(line)

        if len(hotspots) > MAX_HOTSPOT_MESSAGES:
            lines.append(
                f"🔥 You have {len(hotspots)} high-risk files that need attention. "
                "Focus on the most critical ones first."
            )
        return lines

    @staticmethod
    def _hotspot_message(hotspot: RiskScore) -> Optional[str]:
        name = _file_name(hotspot)
        complexity = hotspot.metrics.cyclomatic_complexity
        churn = hotspot.metrics.churn.commit_count
        loc = hotspot.metrics.complexity.lines_of_code

        complex_ = complexity > HIGH_COMPLEXITY_THRESHOLD
        busy = churn > HIGH_CHURN_COMMITS
        large = loc > LARGE_FILE_LOC

        if complex_ and busy:
            return (
                f"🚨 **{name}** is a critical hotspot with high complexity ({complexity}) "
                f"and frequent changes ({churn} commits). "
                "Consider breaking it into smaller, focused modules."
            )
        if complex_ and large:
            return (
                f"⚠️ **{name}** has high complexity ({complexity}) and is large ({loc} LOC). "
                "Consider extracting functions or splitting into multiple files."
            )
        if complex_:
            return (
                f"🔧 **{name}** has high cyclomatic complexity ({complexity}). "
                "Consider simplifying conditional logic and extracting helper functions."
            )
        if busy and large:
            return (
                f"📝 **{name}** changes frequently ({churn} commits) and is large ({loc} LOC). "
                "This suggests it may have too many responsibilities."
            )
        if busy:
            return (
                f"🔄 **{name}** changes very frequently ({churn} commits). "
                "Consider if this file has a clear, single responsibility."
            )
        if large:
            return (
                f"📏 **{name}** is quite large ({loc} LOC). "
                "Consider breaking it into smaller, more focused modules."
            )
        return None

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistical_insights(self, analysis: HealthAnalysis) -> list[str]:
        if analysis.total_files == 0:
            return []

        insights = []
        distribution = analysis.distribution
        critical_pct = _percent(distribution.critical, analysis.total_files)
        high_pct = _percent(distribution.high, analysis.total_files)
        low_pct = _percent(distribution.low, analysis.total_files)

        if critical_pct > 10:
            insights.append(
                f"📊 {critical_pct}% of your files are in critical condition. "
                "This is higher than the recommended 5% threshold."
            )
        elif critical_pct == 0 and high_pct < 20:
            insights.append(
                f"✨ Excellent! You have no critical risk files and only {high_pct}% high-risk files."
            )

        if low_pct > 60:
            insights.append(
                f"💚 Great news! {low_pct}% of your files are low-risk, "
                "indicating a healthy codebase foundation."
            )

        avg_complexity = average_complexity(analysis.risk_scores)
        if avg_complexity > 15:
            insights.append(
                f"🧮 Your average cyclomatic complexity is {avg_complexity:.1f}, "
                f"which is above the recommended threshold of {HIGH_COMPLEXITY_THRESHOLD}."
            )

        churn_insight = self._churn_insight(analysis.risk_scores)
        if churn_insight:
            insights.append(churn_insight)

        return insights

    @staticmethod
    def _churn_insight(scores: Sequence[RiskScore]) -> Optional[str]:
        changed = [s for s in scores if s.metrics.churn.commit_count > 0]
        if not changed:
            return "📅 No recent changes detected in the analyzed timeframe."

        avg_commits = sum(s.metrics.churn.commit_count for s in changed) / len(changed)
        if avg_commits > HIGH_CHURN_COMMITS:
            return (
                f"🔄 High activity detected: {len(changed)} files have been modified "
                f"with an average of {avg_commits:.1f} commits per file."
            )
        if avg_commits < 1:
            return "🐌 Low activity: Your codebase appears stable with minimal recent changes."
        return None

    # ------------------------------------------------------------------
    # Notable patterns
    # ------------------------------------------------------------------

    def notable_patterns(self, analysis: HealthAnalysis) -> list[str]:
        facts = []
        scores = analysis.risk_scores
        if not scores:
            return facts

        with_history = [s for s in scores if s.metrics.churn.days_since_last_change < NO_HISTORY_DAYS]
        if with_history:
            most_stable = max(with_history, key=lambda s: s.metrics.churn.days_since_last_change)
            days = most_stable.metrics.churn.days_since_last_change
            if days > 90:
                facts.append(
                    f"🏛️ **{_file_name(most_stable)}** is your most stable file - "
                    f"it hasn't been changed in {days} days!"
                )

        busiest = max(scores, key=lambda s: s.metrics.churn.commit_count)
        if busiest.metrics.churn.commit_count > 10:
            facts.append(
                f"🚀 **{_file_name(busiest)}** is your busiest file with "
                f"{busiest.metrics.churn.commit_count} commits in the last 30 days!"
            )

        largest = max(scores, key=lambda s: s.metrics.complexity.lines_of_code)
        if largest.metrics.complexity.lines_of_code > 200:
            facts.append(
                f"📚 **{_file_name(largest)}** is your largest file with "
                f"{largest.metrics.complexity.lines_of_code} lines of code."
            )

        total_loc = sum(s.metrics.complexity.lines_of_code for s in scores)
        if total_loc > 1000:
            facts.append(
                f"📈 Your codebase contains {total_loc:,} lines of code across {len(scores)} files."
            )

        return facts

    # ------------------------------------------------------------------
    # Priorities
    # ------------------------------------------------------------------

    def priority_recommendations(self, analysis: HealthAnalysis) -> list[str]:
        lines = []
        health = analysis.health_score

        if health < 50:
            lines.append(
                f"🚨 **Priority 1**: Your overall health score is {health}/100. "
                "Focus on reducing complexity in your highest-risk files."
            )
        elif health < 70:
            lines.append(
                f"⚠️ **Priority 2**: Your health score is {health}/100. "
                "Consider regular refactoring sessions to improve code quality."
            )
        elif health > 85:
            lines.append(f"🎉 **Excellent**: Your health score is {health}/100. Keep up the great work!")

        critical = analysis.distribution.critical
        high = analysis.distribution.high

        if critical > 0:
            lines.append(
                f"🎯 **Immediate Action**: Address {critical} critical-risk files first - "
                "they pose the highest maintenance burden."
            )

        if high > analysis.total_files * 0.25:
            lines.append(
                f"📋 **Medium Priority**: You have {high} high-risk files "
                f"({_percent(high, analysis.total_files)}% of codebase). "
                "Plan refactoring sprints to address these systematically."
            )

        return lines

    # ------------------------------------------------------------------
    # Per-category advice
    # ------------------------------------------------------------------

    def category_recommendations(self, analysis: HealthAnalysis, category: RiskCategory) -> list[str]:
        """Advice for one risk tier plus that tier's mean complexity."""
        category = RiskCategory(category)
        lines = [_CATEGORY_ADVICE[category]]

        in_category = [s for s in analysis.risk_scores if s.category is category]
        avg_complexity = average_complexity(in_category)
        if avg_complexity > 0:
            lines.append(f"📊 Average complexity for {category.value}-risk files: {avg_complexity:.1f}")

        return lines
