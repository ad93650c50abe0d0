import warnings

import numpy as np
import pytest

from fretscope.analysis.config import AnalysisConfig
from fretscope.analysis.pitch import TuningReference


def pytest_configure(config):
    warnings.filterwarnings("ignore", category=DeprecationWarning)
    warnings.filterwarnings("ignore", category=FutureWarning)
    warnings.filterwarnings("ignore", message=".*n_fft=.*too large for input signal.*")
    warnings.filterwarnings("ignore", message=".*PySoundFile failed.*")


@pytest.fixture
def config():
    return AnalysisConfig()


@pytest.fixture
def reference():
    return TuningReference(440.0)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
