import numpy as np
import pytest

from nnloss import (
    ConfigurationError,
    LatentPartition,
    MeanSquaredError,
    ReconstructionLoss,
    ShapeMismatch,
    SigmoidCrossEntropyError,
    build_loss,
    check_gradient,
)

LN2 = np.log(2.0)


def test_latent_partition():
    x = np.arange(10.0).reshape(5, 2)
    recon, mean, logvar = LatentPartition(2).split(x)
    assert recon.shape == (1, 2)
    np.testing.assert_array_equal(mean, x[1:3])
    np.testing.assert_array_equal(logvar, x[3:])
    np.testing.assert_array_equal(LatentPartition(2).join(recon, mean, logvar), x)

    with pytest.raises(ShapeMismatch):
        LatentPartition(2).split(np.zeros((4, 1)))


def test_standard_normal_latent_costs_nothing():
    loss = ReconstructionLoss(latent_size=1)
    p = np.array([[0.5], [0.2], [0.0], [0.0]])
    t = np.array([[0.5], [0.2]])
    assert loss.forward(p, t) == pytest.approx(0.0)
    np.testing.assert_allclose(loss.backward(p, t), np.zeros((4, 1)))


def test_kl_term():
    loss = ReconstructionLoss(latent_size=1)
    p = np.array([[0.5], [0.2], [1.0], [LN2]])
    t = np.array([[0.5], [0.2]])
    # -0.5 (1 + ln2 - 1 - 2)
    assert loss.forward(p, t) == pytest.approx(1.0 - 0.5 * LN2)
    np.testing.assert_allclose(loss.backward(p, t), [[0.0], [0.0], [1.0], [0.5]], atol=1e-12)

    loss.config.beta = 2.0
    assert loss.forward(p, t) == pytest.approx(2.0 - LN2)
    np.testing.assert_allclose(loss.backward(p, t), [[0.0], [0.0], [2.0], [1.0]], atol=1e-12)


def test_kl_is_averaged_over_the_batch():
    p = np.array([[0.5, 0.1], [0.2, 0.3], [1.0, 0.0], [LN2, 0.0]])
    t = p[:2].copy()

    mean = ReconstructionLoss(latent_size=1)
    assert mean.forward(p, t) == pytest.approx((1.0 - 0.5 * LN2) / 2)
    grad = mean.backward(p, t)
    np.testing.assert_allclose(grad[2:], [[0.5, 0.0], [0.25, 0.0]], atol=1e-12)

    total = ReconstructionLoss(latent_size=1, kl_reduction="sum")
    assert total.forward(p, t) == pytest.approx(1.0 - 0.5 * LN2)
    np.testing.assert_allclose(total.backward(p, t)[2:], [[1.0, 0.0], [0.5, 0.0]], atol=1e-12)


def test_reconstruction_term_uses_inner_loss():
    loss = ReconstructionLoss(latent_size=1)
    p = np.array([[1.0], [0.0], [0.0], [0.0]])
    t = np.array([[0.0], [0.0]])
    assert loss.forward(p, t) == pytest.approx(0.5)
    np.testing.assert_allclose(loss.backward(p, t), [[1.0], [0.0], [0.0], [0.0]])

    bernoulli = ReconstructionLoss(inner=SigmoidCrossEntropyError(), latent_size=1)
    expected = SigmoidCrossEntropyError().forward(p[:2], t)
    assert bernoulli.forward(p, t) == pytest.approx(expected)


def test_zero_latent_size_is_the_inner_loss():
    rng = np.random.default_rng(0)
    p, t = rng.normal(size=(3, 4)), rng.normal(size=(3, 4))
    loss = ReconstructionLoss()
    assert loss.forward(p, t) == pytest.approx(MeanSquaredError().forward(p, t))
    np.testing.assert_allclose(loss.backward(p, t), MeanSquaredError().backward(p, t))


def test_shape_errors():
    loss = ReconstructionLoss(latent_size=2)
    with pytest.raises(ShapeMismatch):
        loss.forward(np.zeros((4, 1)), np.zeros((0, 1)))
    with pytest.raises(ShapeMismatch):
        ReconstructionLoss(latent_size=1).forward(np.zeros((4, 1)), np.zeros((3, 1)))


def test_invalid_configuration():
    with pytest.raises(ConfigurationError):
        ReconstructionLoss(inner=MeanSquaredError(reduction="none"))
    with pytest.raises(ConfigurationError):
        ReconstructionLoss(latent_size=-1)
    with pytest.raises(ConfigurationError):
        ReconstructionLoss(beta=-0.5)
    with pytest.raises(ConfigurationError):
        ReconstructionLoss(inner="mse")


def test_build_with_nested_inner_loss():
    loss = build_loss(
        {"name": "reconstruction", "params": {"latent_size": 1, "inner": {"name": "sigmoid_cross_entropy"}}}
    )
    assert isinstance(loss, ReconstructionLoss)
    assert isinstance(loss.config.inner, SigmoidCrossEntropyError)
    assert loss.config.latent_size == 1


def test_gradient():
    rng = np.random.default_rng(7)
    p = rng.normal(scale=0.5, size=(7, 3))
    t = rng.normal(size=(3, 3))
    assert check_gradient(ReconstructionLoss(latent_size=2, beta=0.7), p, t) < 1e-5
