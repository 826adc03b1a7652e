import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np
import pytest

import jaxasp as asp
from jaxasp.utils import Derivatives, Layout, compose, taylor

OUTER_LAYOUT = Layout.create(p=(2,))
INNER_LAYOUT = Layout.create(q=(2,), s=())


def _outer(p):
    return jnp.array([jnp.sin(p[0]) * p[1] ** 2, p[0] * p[1]])


def _inner(q, s):
    return jnp.array([q[0] * s + q[1] ** 2, jnp.exp(q[1]) - q[0]])


def _composed(q, s):
    return _outer(_inner(q, s))


def test_layout():
    layout = Layout.create(F=(3, 3), Xi=(3,), R=())
    assert layout.size == 13
    assert layout.block("Xi") == slice(9, 12)
    z = layout.flatten({"F": np.eye(3), "Xi": [1.0, 2.0, 3.0], "R": 0.5})
    np.testing.assert_allclose(layout.unflatten(z)["F"], np.eye(3))
    assert float(layout.unflatten(z)["R"]) == 0.5

    with pytest.raises(asp.ASPError, match="'Xi' has 2 entries but 3"):
        layout.flatten({"F": np.eye(3), "Xi": [1.0, 2.0], "R": 0.5})
    with pytest.raises(asp.ASPError, match="missing input 'R'"):
        layout.flatten({"F": np.eye(3), "Xi": [1.0, 2.0, 3.0]})
    with pytest.raises(asp.ASPError, match="unknown input"):
        layout.block("chi")


def test_taylor_of_a_polynomial():
    layout = Layout.create(x=(), y=())
    d = taylor(lambda x, y: x**2 * y, layout, {"x": 2.0, "y": 3.0}, order=3)
    assert float(d.value) == pytest.approx(12.0)
    assert float(d.jacobian("x")[0]) == pytest.approx(12.0)
    assert float(d.jacobian("y")[0]) == pytest.approx(4.0)
    assert float(d.hessian("x", "x")[0, 0]) == pytest.approx(6.0)
    assert float(d.hessian("x", "y")[0, 0]) == pytest.approx(4.0)
    assert float(d.third_derivative("x", "x", "y")[0, 0, 0]) == pytest.approx(2.0)
    assert float(d.third_derivative("y", "y", "y")[0, 0, 0]) == pytest.approx(0.0)


@pytest.mark.parametrize("order", [1, 2, 3])
def test_compose_matches_direct_differentiation(order):
    inputs = {"q": np.array([0.3, -0.4]), "s": 1.7}
    inner = taylor(_inner, INNER_LAYOUT, inputs, order)
    outer = taylor(_outer, OUTER_LAYOUT, {"p": inner.value}, order)
    chained = compose(outer, inner, order)
    direct = taylor(_composed, INNER_LAYOUT, inputs, order)

    np.testing.assert_allclose(chained.value, direct.value, rtol=1e-12)
    np.testing.assert_allclose(chained.first, direct.first, rtol=1e-10, atol=1e-12)
    if order >= 2:
        np.testing.assert_allclose(chained.second, direct.second, rtol=1e-10, atol=1e-12)
    if order >= 3:
        np.testing.assert_allclose(chained.third, direct.third, rtol=1e-10, atol=1e-12)


def test_missing_orders_are_reported():
    d = taylor(_inner, INNER_LAYOUT, {"q": [0.1, 0.2], "s": 1.0}, order=1)
    assert d.order == 1
    assert d.jacobian("q").shape == (2, 2)
    with pytest.raises(asp.ASPError, match="order 2"):
        d.hessian("q", "s")
    with pytest.raises(asp.ASPError, match="between 0 and 3"):
        taylor(_inner, INNER_LAYOUT, {"q": [0.1, 0.2], "s": 1.0}, order=4)


def test_zeros():
    d = Derivatives.zeros(jnp.zeros(3), INNER_LAYOUT, 3)
    assert d.order == 3
    assert d.third_derivative("q", "s", "q").shape == (3, 2, 1, 2)
    assert not np.any(np.asarray(d.second))
