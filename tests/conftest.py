import os

import pytest

# Keep test runs off the filesystem; must be set before any logger is created.
os.environ['ARM_CONTROLLER_LOG_DIR'] = ''
os.environ.pop('ARM_CONTROLLER_LOG_FILE', None)


@pytest.fixture
def rig():
    from controller_rig import ControllerRig

    rig = ControllerRig()
    yield rig
    rig.controller.destroy()
