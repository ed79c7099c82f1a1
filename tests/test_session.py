import numpy as np
import pytest

import symgrad as sg
from symgrad.core.errors import UnboundPlaceholderError


def test_run_operations():
    a = sg.constant(3.0, dtype=sg.float32)
    b = sg.constant(4.0)
    c = sg.constant(5.0)
    sess = sg.Session()
    assert sess.run(a + b) == 7.0
    assert sess.run(a * c) == 15.0


def test_run_several_fetches():
    a = sg.constant(3.0)
    b = sg.constant(4.0)
    sess = sg.Session()
    assert sess.run(a, b) == [3.0, 4.0]
    assert sess.run([a, b]) == [3.0, 4.0]


def test_feed_dict_by_node_and_name():
    x = sg.placeholder(sg.float32, name="x")
    sess = sg.Session()
    assert sess.run(x * 2, feed_dict={x: 3}) == 6.0
    assert sess.run(x * 2, feed_dict={"x": 4}) == 8.0


def test_placeholder_value_is_cast():
    x = sg.placeholder(sg.float32)
    value = sg.Session().run(x, feed_dict={x: [1, 2]})
    assert value.dtype == np.float64


def test_unbound_placeholder_raises_even_under_ops():
    x = sg.placeholder(sg.float32)
    with pytest.raises(UnboundPlaceholderError):
        sg.Session().run(sg.sin(x) + 1.0)


def test_retained_node_stays_symbolic():
    x = sg.placeholder(sg.float32)
    expr = x * 2.0 + 1.0
    result = sg.Session().run(expr, retain=[x])
    assert result is expr


def test_retained_constant_stays_symbolic():
    c = sg.constant(2.0)
    result = sg.Session().run(sg.sin(c), retain=[c])
    assert isinstance(result, sg.Tensor)
    assert result.operation == "sin"


def test_feed_with_node_value():
    x = sg.placeholder(sg.float32)
    y = sg.constant(5.0)
    assert sg.Session().run(x + 1.0, feed_dict={x: y * 2}) == 11.0


def test_context_manager_closes():
    with sg.Session() as sess:
        assert sess.run(sg.constant(1.0)) == 1.0
    with pytest.raises(RuntimeError):
        sess.run(sg.constant(1.0))


def test_verbose_prints_timing(capsys):
    a = sg.constant(1.0, name="a")
    sess = sg.Session(config=sg.SessionConfig(verbose=True))
    sess.run(a)
    out = capsys.readouterr().out
    assert "[Session] run(a)" in out


def test_unknown_backend():
    with pytest.raises(ValueError):
        sg.Session(config=sg.SessionConfig(backend="nope"))


def test_memo_shares_values_within_one_run():
    r = sg.random_uniform([3])
    first, second = sg.Session().run(r, r)
    np.testing.assert_array_equal(first, second)


def test_nodes_from_two_graphs_in_one_run():
    g1, g2 = sg.Graph(), sg.Graph()
    c1 = sg.constant(1.0, graph=g1)
    c2 = sg.constant(2.0, graph=g2)
    assert c1.name == c2.name == "Const:0"
    assert sg.Session(graph=g1).run(c1, c2) == [1.0, 2.0]


def test_feeds_bind_by_placeholder_not_name():
    g1, g2 = sg.Graph(), sg.Graph()
    x1 = sg.placeholder(sg.float32, name="x", graph=g1)
    x2 = sg.placeholder(sg.float32, name="x", graph=g2)
    sess = sg.Session(graph=g1)
    assert sess.run(x1, x2, feed_dict={x1: 1.0, x2: 2.0}) == [1.0, 2.0]
    with pytest.raises(UnboundPlaceholderError):
        sess.run(x2, feed_dict={"x": 3.0})


def test_feed_with_unknown_name():
    with pytest.raises(KeyError):
        sg.Session().run(sg.constant(1.0), feed_dict={"missing": 1.0})
