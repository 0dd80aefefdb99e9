from __future__ import annotations

import numpy as np
import pytest

from tests.synthetic import SyntheticTarget, render_target
from tests.synthetic.presets import bordered


@pytest.fixture
def group_case() -> SyntheticTarget:
    return bordered()


@pytest.fixture
def group_image(group_case: SyntheticTarget) -> np.ndarray:
    return render_target(group_case)


@pytest.fixture
def blank_gray() -> np.ndarray:
    return np.full((64, 64), 255, dtype=np.uint8)
