import numpy as np
import pytest

from nnloss import (
    ConfigurationError,
    DomainViolation,
    HuberLoss,
    L1Loss,
    LogCoshLoss,
    MeanAbsolutePercentageError,
    MeanBiasError,
    MeanSquaredError,
    MeanSquaredLogarithmicError,
    ShapeMismatch,
)
from nnloss.losses.regression import mse


def test_mse_functional_returns_value_and_grad():
    yhat = np.array([0.1, 0.4, 0.6])
    y = np.array([0.0, 0.5, 1.0])

    out = mse(yhat, y, return_grad=True)
    assert out.value == pytest.approx(0.06)
    np.testing.assert_allclose(out.grad, 2 * (yhat - y) / 3)


def test_mse_functional_sample_weight():
    yhat = np.array([0.1, 0.4, 0.6])
    y = np.array([0.0, 0.5, 1.0])
    w = np.array([1.0, 0.0, 0.0])

    out = mse(yhat, y, sample_weight=w, return_grad=True)
    assert out.value == pytest.approx(0.01 / 3)
    np.testing.assert_allclose(out.grad, [0.2 / 3, 0.0, 0.0])
    assert mse(yhat, y).grad is None


def test_mse_reference_values():
    loss = MeanSquaredError()
    p = np.array([[1.0, 0.0, 1.0, 0.0, -1.0, 0.0, -1.0, 0.0]])
    t = np.zeros((1, 8))

    assert loss.forward(p, t) == 0.5
    grad = loss.backward(p, t)
    assert grad.shape == p.shape
    # grad = 2 (p - t) / n  =>  grad * n / 2 == p
    np.testing.assert_allclose(grad * p.size / 2, p)


def test_mse_single_element():
    loss = MeanSquaredError()
    p, t = np.array([[2.0]]), np.array([[3.0]])
    assert loss.forward(p, t) == 1.0
    grad = loss.backward(p, t)
    assert grad.shape == (1, 1)
    assert grad.sum() == -2.0


def test_l1_sum_reduction():
    loss = L1Loss(reduction="sum")
    p = np.full((1, 7), 0.5)
    t = np.zeros((1, 7))
    assert loss.forward(p, t) == 3.5
    np.testing.assert_array_equal(loss.backward(p, t), np.ones((1, 7)))


def test_l1_zero_at_target():
    loss = L1Loss()
    x = np.array([[0.0, 1.0, 1.0, 0.0, 1.0, 0.0, 0.0, 1.0]])
    assert loss.forward(x, x) == pytest.approx(0.0)
    np.testing.assert_array_equal(loss.backward(x, x), np.zeros_like(x))


def test_msle():
    loss = MeanSquaredLogarithmicError()
    zeros = np.zeros((1, 8))
    assert loss.forward(zeros, zeros) == pytest.approx(0.0)
    np.testing.assert_allclose(loss.backward(zeros, zeros), zeros)

    p, t = np.array([[2.0]]), np.array([[3.0]])
    assert loss.forward(p, t) == pytest.approx(0.082760974810151655, rel=1e-5)
    grad = loss.backward(p, t)
    assert grad.size == 1
    assert grad.sum() == pytest.approx(-0.1917880483011872, rel=1e-5)


def test_msle_domain():
    loss = MeanSquaredLogarithmicError()
    with pytest.raises(DomainViolation):
        loss.forward(np.array([-1.0, 0.5]), np.array([0.0, 0.0]))
    with pytest.raises(DomainViolation):
        loss.backward(np.array([0.0, 0.5]), np.array([-2.0, 0.0]))


def test_mean_bias_error():
    loss = MeanBiasError()
    p = np.array([[1.0, 0.0, 1.0, -1.0, -1.0, 0.0, -1.0, 0.0]])
    t = np.zeros((1, 8))
    assert loss.forward(p, t) == 0.125
    np.testing.assert_array_equal(loss.backward(p, t), -np.ones((1, 8)))

    p, t = np.array([[2.0]]), np.array([[3.0]])
    assert loss.forward(p, t) == 1.0
    assert loss.backward(p, t).sum() == -1.0


def test_mean_bias_error_gradient_ignores_reduction():
    p = np.array([[0.5, 2.0, -3.0]])
    t = np.array([[1.0, 1.0, 1.0]])
    for reduction in ("mean", "sum", "none"):
        np.testing.assert_array_equal(MeanBiasError(reduction=reduction).backward(p, t), -np.ones((1, 3)))


def test_mape():
    loss = MeanAbsolutePercentageError()
    p = np.array([[3.0, -0.5, 2.0, 7.0]])
    t = np.array([[2.5, 0.2, 2.0, 8.0]])
    assert loss.forward(p, t) == pytest.approx(95.625)
    np.testing.assert_allclose(loss.backward(p, t), [[10.0, -125.0, 0.0, -3.125]])


def test_mape_zero_target():
    with pytest.raises(DomainViolation):
        MeanAbsolutePercentageError().forward(np.array([1.0, 2.0]), np.array([1.0, 0.0]))


def test_huber_reference_values():
    loss = HuberLoss()
    p = np.array([[17.45, 12.91, 13.63, 29.01, 7.12, 15.47, 31.52, 31.97]])
    t = np.array([[16.52, 13.11, 13.67, 29.51, 24.31, 15.03, 30.72, 34.07]])

    assert loss.forward(p, t) == pytest.approx(2.410631, rel=1e-5)
    grad = loss.backward(p, t)
    assert grad.shape == p.shape
    assert grad.sum() == pytest.approx(-0.07125, rel=1e-5)
    np.testing.assert_allclose(
        grad, [[0.11625, -0.025, -0.005, -0.0625, -0.125, 0.055, 0.1, -0.125]], atol=1e-9
    )


def test_huber_is_continuous_at_delta():
    loss = HuberLoss(delta=0.5, reduction="none")
    t = np.zeros(2)
    p = np.array([0.5 - 1e-9, 0.5 + 1e-9])
    values = loss.forward(p, t)
    grads = loss.backward(p, t)
    assert values[0] == pytest.approx(values[1], abs=1e-8)
    assert grads[0] == pytest.approx(grads[1], abs=1e-8)


def test_huber_rejects_bad_delta():
    with pytest.raises(ConfigurationError):
        HuberLoss(delta=0.0)


def test_log_cosh():
    loss = LogCoshLoss(a=2)
    ones = np.ones((10, 1))
    assert loss.forward(ones, ones) == 0
    np.testing.assert_allclose(loss.backward(ones, ones), np.zeros((10, 1)), atol=1e-12)

    p = np.array([[1.0, 2.0, 3.0, 4.0, 5.0]])
    t = np.array([[1.0, 2.4, 3.4, 4.2, 5.5]])
    assert loss.forward(p, t) == pytest.approx(0.546621, rel=1e-4)
    grad = loss.backward(p, t)
    assert grad.shape == p.shape
    assert grad.sum() == pytest.approx(-2.469617, rel=1e-5)


def test_log_cosh_large_residual_is_finite():
    loss = LogCoshLoss()
    p, t = np.array([1000.0, -1000.0]), np.zeros(2)
    # log(cosh(x)) ~ |x| - log(2)
    assert loss.forward(p, t) == pytest.approx(2 * (1000.0 - np.log(2.0)))
    np.testing.assert_allclose(loss.backward(p, t), [1.0, -1.0])


def test_shape_mismatch_fails_fast():
    with pytest.raises(ShapeMismatch):
        MeanSquaredError().forward(np.zeros((2, 3)), np.zeros((3, 2)))
    with pytest.raises(ShapeMismatch):
        mse(np.zeros(3), np.zeros(4))
