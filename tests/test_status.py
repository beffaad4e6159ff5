"""Tests for status-word conversion into exceptions and warnings."""
import warnings

import numpy as np
import pytest

from exdyn.errors import ExplicitDynamicsError, StabilityError
from exdyn.status import (
    DEGENERATE_ELEMENT,
    FATAL_MASK,
    NONFINITE_STATE,
    POLAR_FALLBACK,
    ZERO_MASS,
    StatusCode,
    check_status,
    describe,
)


def test_flag_values():
    assert StatusCode.OK == 0
    assert DEGENERATE_ELEMENT == 1
    assert POLAR_FALLBACK == 2
    assert NONFINITE_STATE == 4
    assert ZERO_MASS == 8
    assert not FATAL_MASK & POLAR_FALLBACK


def test_describe():
    assert describe(0) == "OK"
    assert describe(POLAR_FALLBACK) == "POLAR_FALLBACK"
    text = describe(DEGENERATE_ELEMENT | NONFINITE_STATE)
    assert "DEGENERATE_ELEMENT" in text
    assert "NONFINITE_STATE" in text


def test_clean_status_passes_silently():
    status = np.zeros(5, dtype=np.int32)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert check_status(status, "grad_hgop", step=3) == 0


def test_fatal_flag_raises_with_context():
    status = np.zeros(6, dtype=np.int32)
    status[4] = DEGENERATE_ELEMENT
    with pytest.raises(StabilityError) as excinfo:
        check_status(status, "grad_hgop", step=12)
    err = excinfo.value
    assert isinstance(err, ExplicitDynamicsError)
    assert err.phase == "grad_hgop"
    assert err.step == 12
    assert err.entities == (4,)
    assert "step 12" in str(err)
    assert "element 4" in str(err)


def test_node_failures_named_as_nodes():
    status = np.zeros(3, dtype=np.int32)
    status[1] = ZERO_MASS
    with pytest.raises(StabilityError, match="node 1"):
        check_status(status, "finish_step", step=0, entity_kind="node")


def test_many_failures_are_truncated():
    status = np.full(25, NONFINITE_STATE, dtype=np.int32)
    with pytest.raises(StabilityError, match="and 15 more") as excinfo:
        check_status(status, "divergence", step=1)
    assert len(excinfo.value.entities) == 25


def test_polar_fallback_warns_and_counts():
    status = np.zeros(4, dtype=np.int32)
    status[[0, 2]] = POLAR_FALLBACK
    with pytest.warns(RuntimeWarning, match="identity rotation"):
        count = check_status(status, "decomp_rotate", step=2)
    assert count == 2


def test_initialization_wording():
    status = np.array([NONFINITE_STATE], dtype=np.int32)
    with pytest.raises(StabilityError, match="during initialization"):
        check_status(status, "initialize_element")


def test_fallbacks_reported_once():
    status = np.array([POLAR_FALLBACK, 0], dtype=np.int32)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert check_status(status, "divergence", step=5,
                            report_fallbacks=False) == 0
