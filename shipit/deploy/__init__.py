"""Deploy library: context, pipeline steps, health checks, orchestration, rollback."""

from shipit.deploy.context import DeployContext
from shipit.deploy.health import HealthChecker, HealthState
from shipit.deploy.pipeline import deploy, deploy_to_host, run_pipeline
from shipit.deploy.progress import RollbackStep, Step
from shipit.deploy.rollback import rollback, rollback_stage, run_rollback

__all__ = [
    "DeployContext",
    "HealthChecker",
    "HealthState",
    "Step",
    "RollbackStep",
    "deploy",
    "deploy_to_host",
    "run_pipeline",
    "rollback",
    "rollback_stage",
    "run_rollback",
]
