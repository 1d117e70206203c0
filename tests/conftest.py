"""Pytest configuration for org_provisioner tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports without an editable install
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from org_provisioner.provisioning.models import ProvisioningRequest


@pytest.fixture
def pending_request():
    """A fresh, not yet submitted request for a@x.com."""
    return ProvisioningRequest(
        identity_key='a@x.com',
        display_name='a',
        target_group_id='ou-1',
    )
