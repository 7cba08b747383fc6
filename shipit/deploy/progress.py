"""Pipeline step identifiers and progress reporting."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Step(Enum):
    """Per-host deploy steps, in execution order."""

    CREATE_RELEASE_DIR = (1, "Creating release directory")
    PUSH_CODE = (2, "Pushing code to remote")
    CHECKOUT_CODE = (3, "Checking out code")
    WRITE_OVERLAY = (4, "Generating docker-compose.override.yml")
    LINK_ENV = (5, "Providing runtime configuration")
    BUILD_IMAGES = (6, "Building Docker images")
    START_NEW = (7, "Starting new release")
    HEALTH_CHECK = (8, "Running health check")
    STOP_PREVIOUS = (9, "Stopping previous release")
    UPDATE_SYMLINK = (10, "Updating current symlink")
    UPDATE_LOCK = (11, "Updating shipit.lock")
    CLEANUP = (12, "Cleaning up old releases")

    def __init__(self, number, label):
        self.number = number
        self.label = label

    @property
    def total(self) -> int:
        return len(type(self))


class RollbackStep(Enum):
    """Per-host rollback steps."""

    STOP_CURRENT = (1, "Stopping current release")
    START_TARGET = (2, "Starting target release")
    HEALTH_CHECK = (3, "Running health check")
    UPDATE_SYMLINK = (4, "Updating current symlink")
    UPDATE_LOCK = (5, "Updating shipit.lock")

    def __init__(self, number, label):
        self.number = number
        self.label = label

    @property
    def total(self) -> int:
        return len(type(self))


def report_step(step, host):
    logger.info(f"[{step.number}/{step.total}] {host}: {step.label}")
