from .dsl import target, phony, sh, cmd, declare, TargetBuilder, build
from .model import Action, Target, Status, RunResult, RunReport
from .registry import TargetRegistry
from .dag import ExecutionPlan, resolve
from .runner import Engine
from .dispatcher import Dispatcher, RunOptions

__all__ = [
    "target",
    "phony",
    "sh",
    "cmd",
    "declare",
    "TargetBuilder",
    "build",
    "Action",
    "Target",
    "Status",
    "RunResult",
    "RunReport",
    "TargetRegistry",
    "ExecutionPlan",
    "resolve",
    "Engine",
    "Dispatcher",
    "RunOptions",
]
