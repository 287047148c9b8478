"""BDD tests for metric explosion and per-measurement delivery.

Step definitions are in conftest.py.
"""

import pytest
from pytest_bdd import scenarios

scenarios("metric_explosion.feature")

pytestmark = [pytest.mark.tier(1), pytest.mark.core]
