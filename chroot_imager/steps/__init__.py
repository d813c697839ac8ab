from .step_10_probe_environment import ProbeEnvironmentStep
from .step_20_select_target import SelectTargetStep
from .step_30_bootstrap_rootfs import BootstrapRootfsStep
from .step_40_install_base import InstallBaseStep
from .step_50_install_desktop import InstallDesktopStep
from .step_60_select_packages import SelectPackagesStep
from .step_70_upgrade_chroot import UpgradeChrootStep
from .step_75_release_chroot import ReleaseChrootStep
from .step_80_materialize_image import MaterializeImageStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "ProbeEnvironmentStep",
    "SelectTargetStep",
    "BootstrapRootfsStep",
    "InstallBaseStep",
    "InstallDesktopStep",
    "SelectPackagesStep",
    "UpgradeChrootStep",
    "ReleaseChrootStep",
    "MaterializeImageStep",
    "FinalizeStep",
]
