from brandmonitor.models.kpi_snapshot import PromptKpiSnapshot, TopicKpiSnapshot
from brandmonitor.models.measurement_run import MeasurementRun, RunStatus
from brandmonitor.models.monitoring_prompt import MonitoringPrompt
from brandmonitor.models.result import Citation, Result
from brandmonitor.models.topic import Topic
from brandmonitor.models.workspace import Workspace, WorkspaceRegion

__all__ = [
    "Citation",
    "MeasurementRun",
    "MonitoringPrompt",
    "PromptKpiSnapshot",
    "Result",
    "RunStatus",
    "Topic",
    "TopicKpiSnapshot",
    "Workspace",
    "WorkspaceRegion",
]
