from .project import Project
from .decision import Decision
from .risk import Risk
from .event import Event
from .playbook import Playbook
from .pattern_analysis import PatternAnalysis
from .health import HealthScore, PortfolioHealth
from .anomaly import Anomaly
from .prediction import RiskPrediction, BottleneckPrediction, CompletionForecast
from .recommendation import Recommendation, RecommendationFeedback
from .oracle import OracleTrajectory, OracleQuestion, OracleWeeklySummary
from .daily_focus import DailyFocus

__all__ = [
    "Project",
    "Decision",
    "Risk",
    "Event",
    "Playbook",
    "PatternAnalysis",
    "HealthScore",
    "PortfolioHealth",
    "Anomaly",
    "RiskPrediction",
    "BottleneckPrediction",
    "CompletionForecast",
    "Recommendation",
    "RecommendationFeedback",
    "OracleTrajectory",
    "OracleQuestion",
    "OracleWeeklySummary",
    "DailyFocus",
]
