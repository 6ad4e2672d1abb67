from enum import Enum, auto


class DeploymentStage(Enum):
    STARTING = auto()
    STOPPING_SERVICE = auto()
    CREATING_BACKUP = auto()
    COPYING_FILES = auto()
    VERIFYING_FILES = auto()
    STARTING_SERVICE = auto()
    COMPLETED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStage.COMPLETED, DeploymentStage.FAILED)


# Linear order of the happy path; FAILED may be entered from any non-terminal stage
STAGE_ORDER = (
    DeploymentStage.STARTING,
    DeploymentStage.STOPPING_SERVICE,
    DeploymentStage.CREATING_BACKUP,
    DeploymentStage.COPYING_FILES,
    DeploymentStage.VERIFYING_FILES,
    DeploymentStage.STARTING_SERVICE,
    DeploymentStage.COMPLETED,
)
