import numpy as np
import pytest

import symgrad as sg
from symgrad.core.errors import ShapeMismatchError, UnsupportedReductionError
from symgrad.core.evaluator import Concrete, Evaluator, Symbolic, broadcast_apply
from symgrad.core.node import OPERATION_KINDS


def test_every_operation_kind_has_a_handler():
    assert set(Evaluator._HANDLERS) == OPERATION_KINDS


def test_evaluate_step_results(graph):
    ev = Evaluator(graph)
    c = sg.constant(2.0)
    assert ev.evaluate_step(c) == Concrete(2.0)
    x = sg.placeholder(sg.float32)
    retained = Evaluator(graph, retain=[x])
    assert retained.evaluate_step(x) == Symbolic(x)


def test_broadcast_apply():
    np.testing.assert_array_equal(broadcast_apply(np.add, np.array([[1, 2], [3, 4]]), np.array([10, 20])),
                                  [[11, 22], [13, 24]])
    assert broadcast_apply(np.add, np.float64(1.0), np.float64(2.0)) == 3.0
    with pytest.raises(ShapeMismatchError):
        broadcast_apply(np.add, np.array([1, 2]), np.array([1, 2, 3]))


# concat / reshape / slice -------------------------------------------------

def test_concat():
    t1 = [[1, 2, 3], [4, 5, 6]]
    t2 = [[7, 8, 9], [10, 11, 12]]
    np.testing.assert_array_equal(sg.concat([t1, t2], 0).eval(),
                                  [[1, 2, 3], [4, 5, 6], [7, 8, 9], [10, 11, 12]])
    np.testing.assert_array_equal(sg.concat([t1, t2], 1).eval(),
                                  [[1, 2, 3, 7, 8, 9], [4, 5, 6, 10, 11, 12]])


def test_concat_negative_axis():
    t1 = [[[1, 2], [2, 3]], [[4, 4], [5, 3]]]
    t2 = [[[7, 4], [8, 4]], [[2, 10], [15, 11]]]
    np.testing.assert_array_equal(sg.concat([t1, t2], -1).eval(),
                                  [[[1, 2, 7, 4], [2, 3, 8, 4]],
                                   [[4, 4, 2, 10], [5, 3, 15, 11]]])


def test_reshape():
    np.testing.assert_array_equal(sg.reshape([1, 2, 3, 4, 5, 6, 7, 8, 9], [3, 3]).eval(),
                                  [[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    t = [[[1, 1], [2, 2]], [[3, 3], [4, 4]]]
    np.testing.assert_array_equal(sg.reshape(t, [2, 4]).eval(), [[1, 1, 2, 2], [3, 3, 4, 4]])
    assert sg.reshape([7], []).eval() == 7


T3 = [[[1, 1, 1], [2, 2, 2]],
      [[3, 3, 3], [4, 4, 4]],
      [[5, 5, 5], [6, 6, 6]]]


def test_reshape_flatten_and_inference():
    np.testing.assert_array_equal(sg.shape(T3).eval(), [3, 2, 3])
    np.testing.assert_array_equal(sg.reshape(T3, [-1]).eval(),
                                  [1, 1, 1, 2, 2, 2, 3, 3, 3, 4, 4, 4, 5, 5, 5, 6, 6, 6])
    expected = [[1, 1, 1, 2, 2, 2, 3, 3, 3], [4, 4, 4, 5, 5, 5, 6, 6, 6]]
    np.testing.assert_array_equal(sg.reshape(T3, [2, -1]).eval(), expected)
    np.testing.assert_array_equal(sg.reshape(T3, [-1, 9]).eval(), expected)
    np.testing.assert_array_equal(sg.reshape(T3, [2, -1, 3]).eval(),
                                  [[[1, 1, 1], [2, 2, 2], [3, 3, 3]],
                                   [[4, 4, 4], [5, 5, 5], [6, 6, 6]]])


@pytest.mark.parametrize("shape", [[3, 2, 2], [-1, -1], [4, -1]])
def test_reshape_mismatch_raises(shape):
    with pytest.raises(ShapeMismatchError):
        sg.reshape(T3, shape).eval()


def test_slice():
    t = sg.constant(T3)
    np.testing.assert_array_equal(sg.slice(t, [1, 0, 0], [1, 1, 3]).eval(), [[[3, 3, 3]]])
    np.testing.assert_array_equal(sg.slice(t, [1, 0, 0], [1, 2, 3]).eval(), [[[3, 3, 3], [4, 4, 4]]])
    np.testing.assert_array_equal(sg.slice(t, [1, 0, 0], [2, 1, 3]).eval(), [[[3, 3, 3]], [[5, 5, 5]]])
    np.testing.assert_array_equal(sg.slice(sg.constant([1, 2, 3, 4, 5, 6, 7]), [2], [1]).eval(), [3])
    np.testing.assert_array_equal(sg.slice(sg.constant([1, 2, 3, 4]), [1], [-1]).eval(), [2, 3, 4])


# comparisons / control flow ----------------------------------------------

def test_equal_compares_whole_values():
    a = sg.constant(1.0)
    b = sg.constant(1.0)
    c = sg.constant(2.1)
    d = sg.constant([[1.0]])
    e = sg.constant([[1.0]])
    f = sg.constant([[2.0]])
    assert sg.equal(a, b).eval() == True  # noqa: E712
    assert sg.equal(a, c).eval() == False  # noqa: E712
    assert sg.equal(d, e).eval() == True  # noqa: E712
    assert sg.equal(e, f).eval() == False  # noqa: E712
    assert sg.equal(sg.constant([1.0, 2.0]), sg.constant([1.0])).eval() == False  # noqa: E712


def test_less_and_greater():
    a = sg.constant(2.0)
    b = sg.constant(3.0)
    assert sg.less(a, b).eval()
    assert not sg.less(b, a).eval()
    assert not sg.greater(a, b).eval()
    assert sg.greater(b, a).eval()
    np.testing.assert_array_equal(sg.less(sg.constant([1.0, 5.0]), 3.0).eval(), [True, False])


def test_cond():
    x = sg.constant(2.0)
    y = sg.constant(3.0)
    z = sg.multiply(x, y)
    result = sg.cond(x < y, sg.add(x, z), sg.square(y))
    result2 = sg.cond(x > y, lambda: sg.add(x, z), lambda: sg.square(y))
    assert result.eval() == 8.0
    assert result2.eval() == 9.0


def test_cond_evaluates_only_selected_branch():
    x = sg.placeholder(sg.float32)
    result = sg.cond(sg.constant(True), sg.constant(1.0), x * 2)
    assert result.eval() == 1.0


def test_where():
    x = sg.constant([1.0, -2.0, 3.0])
    picked = sg.where(x, sg.zeros_like(x), x > 0)
    np.testing.assert_array_equal(picked.eval(), [1.0, 0.0, 3.0])


# arithmetic ---------------------------------------------------------------

def test_sub_broadcasting():
    a = sg.constant([1.0, 2.0, 3.0])
    b = sg.constant([0.1, 0.2, 0.3])
    c = sg.constant(0.1)
    m = sg.constant([[1.0, 2.0, 3.0], [2.0, 3.0, 4.0], [5.0, 6.0, 7.0], [8.0, 9.0, 10.0]])
    np.testing.assert_allclose((a - b).eval(), [0.9, 1.8, 2.7])
    np.testing.assert_allclose((a - c).eval(), [0.9, 1.9, 2.9])
    np.testing.assert_allclose((m - a).eval(),
                               [[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [4.0, 4.0, 4.0], [7.0, 7.0, 7.0]])


def test_div():
    assert (sg.constant(2.5) / sg.constant(3.1)).eval() == pytest.approx(0.8065, abs=1e-4)


def test_pow():
    x = sg.constant([[2, 2], [3, 3]])
    y = sg.constant([[8, 16], [2, 3]])
    sess = sg.Session()
    np.testing.assert_array_equal(sess.run(sg.pow(x, y)), [[256, 65536], [9, 27]])
    np.testing.assert_array_equal(sess.run(sg.pow(x, 2)), [[4, 4], [9, 9]])


def test_sum_of_sines():
    y = sg.sin(1.0) + sg.sin(2.0)
    assert y.eval() == pytest.approx(1.7507684116335782, rel=1e-12)


def test_negate():
    sess = sg.Session()
    assert sess.run(sg.negate(sg.constant(0.1))) == -0.1
    np.testing.assert_array_equal(sess.run(sg.negate(sg.constant([[1.1, 16.1], [2.1, 3.0]]))),
                                  [[-1.1, -16.1], [-2.1, -3.0]])
    assert sess.run(-sg.constant(4.1)) == -4.1


# elementwise unary --------------------------------------------------------

X_VALUE = 0.1
Y_VALUE = [[1.1, 16.1], [2.1, 3.0]]

UNARY_CASES = [
    ("sin", 0.0998, [[0.8912, -0.3821], [0.8632, 0.1411]]),
    ("cos", 0.995, [[0.4536, -0.9241], [-0.5048, -0.99]]),
    ("tan", 0.1003, [[1.9648, 0.4134], [-1.7098, -0.1425]]),
    ("tanh", 0.0997, [[0.8005, 1.0], [0.9705, 0.9951]]),
    ("log", -2.3026, [[0.0953, 2.7788], [0.7419, 1.0986]]),
    ("exp", 1.1052, [[3.0042, 9820670.9221], [8.1662, 20.0855]]),
    ("square", 0.01, [[1.21, 259.21], [4.41, 9.0]]),
    ("negate", -0.1, [[-1.1, -16.1], [-2.1, -3.0]]),
    ("identity", 0.1, [[1.1, 16.1], [2.1, 3.0]]),
    ("abs", 0.1, [[1.1, 16.1], [2.1, 3.0]]),
    ("sqrt", 0.3162, [[1.0488, 4.0125], [1.4491, 1.7321]]),
    ("erf", 0.1125, [[0.8802, 1.0], [0.997, 1.0]]),
]


@pytest.mark.parametrize("func, scalar, matrix", UNARY_CASES)
def test_unary_values(func, scalar, matrix):
    fn = getattr(sg, func)
    sess = sg.Session()
    assert sess.run(fn(sg.constant(X_VALUE))) == pytest.approx(scalar, abs=1e-4)
    np.testing.assert_allclose(sess.run(fn(sg.constant(Y_VALUE))), matrix, rtol=1e-4, atol=1e-4)


def test_abs_and_sign():
    a = [[1, 2], [-1, 2], [3, -3]]
    np.testing.assert_array_equal(sg.abs(a).eval(), [[1, 2], [1, 2], [3, 3]])
    assert sg.abs(-1.123).eval() == pytest.approx(1.123)
    np.testing.assert_array_equal(sg.sign(sg.constant(a)).eval(), [[1, 1], [-1, 1], [1, -1]])
    assert sg.sign(-1.123).eval() == -1.0
    np.testing.assert_array_equal(sg.sign(sg.constant([np.nan, 0.0, 2.0])).eval(), [0.0, 0.0, 1.0])


def test_log_of_non_positive_is_silent():
    with np.errstate(all="raise"):
        value = sg.log(sg.constant([-1.0, 0.0])).eval()
    assert np.isnan(value[0])
    assert np.isneginf(value[1])


# reductions / matmul ------------------------------------------------------

def test_reduce_sum():
    x = sg.constant([[1, 1, 1], [1, 1, 1]])
    assert sg.reduce_sum(x).eval() == 6
    np.testing.assert_array_equal(sg.reduce_sum(x, 0).eval(), [2, 2, 2])
    np.testing.assert_array_equal(sg.reduce_sum(x, 1).eval(), [3, 3])
    np.testing.assert_array_equal(sg.reduce_sum(x, 1, keepdims=True).eval(), [[3], [3]])
    assert sg.reduce_sum(x, [0, 1]).eval() == 6


def test_reduce_prod():
    x = sg.constant([[1, 2, 3], [4, 5, 6]])
    assert sg.reduce_prod(x).eval() == 720
    np.testing.assert_array_equal(sg.reduce_prod(x, 1).eval(), [6, 120])


def test_reduce_unsupported_axis():
    with pytest.raises(UnsupportedReductionError):
        sg.reduce_sum(sg.constant([[1, 2], [3, 4]]), 2).eval()


def test_matmul():
    a = sg.constant([1, 2, 3, 4, 5, 6], shape=[2, 3])
    b = sg.constant([7, 8, 9, 10, 11, 12], shape=[3, 2])
    np.testing.assert_array_equal(sg.matmul(a, b).eval(), [[58, 64], [139, 154]])
    np.testing.assert_array_equal(sg.matmul(a, b, transpose_a=True, transpose_b=True).eval(),
                                  [[39, 49, 59], [54, 68, 82], [69, 87, 105]])


def test_matmul_scalar_operand():
    m = sg.constant([[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_array_equal(sg.matmul(m, 2.0).eval(), [[6.0, 6.0], [14.0, 14.0]])


def test_matmul_shape_mismatch():
    with pytest.raises(ShapeMismatchError):
        sg.matmul(sg.constant([[1.0, 2.0]]), sg.constant([[1.0, 2.0]])).eval()


def test_transpose():
    x = sg.constant([[1, 2, 3], [4, 5, 6]])
    np.testing.assert_array_equal(sg.Session().run(sg.transpose(x)), [[1, 4], [2, 5], [3, 6]])


# shape / generators -------------------------------------------------------

def test_shape_and_rank():
    t = sg.constant([[[1, 1, 1], [2, 2, 2]], [[3, 3, 3], [4, 4, 4]]])
    np.testing.assert_array_equal(sg.shape(t).eval(), [2, 2, 3])
    assert list(sg.shape(sg.constant(1)).eval()) == []
    np.testing.assert_array_equal(sg.shape(sg.constant([[1, 2, 3], [4, 5, 6]])).eval(), [2, 3])
    assert sg.rank(t).eval() == 3
    assert sg.rank(sg.constant(1)).eval() == 0
    assert sg.rank(sg.constant([1, 2])).eval() == 1


def test_zeros_ones_eye():
    np.testing.assert_array_equal(sg.zeros([2, 2]).eval(), [[0.0, 0.0], [0.0, 0.0]])
    np.testing.assert_array_equal(sg.ones([2, 2]).eval(), [[1.0, 1.0], [1.0, 1.0]])
    np.testing.assert_array_equal(sg.eye(2).eval(), [[1.0, 0.0], [0.0, 1.0]])
    np.testing.assert_array_equal(sg.eye(3).eval(), np.eye(3))
    np.testing.assert_array_equal(sg.eye(3, num_columns=2).eval(), [[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])


def test_zeros_from_shape_node():
    t = sg.constant([[1.0, 2.0, 3.0]])
    np.testing.assert_array_equal(sg.ones(sg.shape(t)).eval(), [[1.0, 1.0, 1.0]])
    np.testing.assert_array_equal(sg.ones_like(t).eval(), [[1.0, 1.0, 1.0]])
    np.testing.assert_array_equal(sg.zeros_like(t).eval(), [[0.0, 0.0, 0.0]])


def test_pad():
    padded = sg.pad(sg.constant([[1, 2], [3, 4]]), [[1, 0], [0, 1]])
    np.testing.assert_array_equal(padded.eval(), [[0, 0, 0], [1, 2, 0], [3, 4, 0]])


def test_random_uniform_shapes_and_range():
    sg.set_random_seed(1234)
    assert np.ndim(sg.random_uniform([]).eval()) == 0
    values = sg.random_uniform([2, 3], minval=0, maxval=2).eval()
    assert values.shape == (2, 3)
    assert np.all((values >= 0) & (values < 2))


def test_random_uniform_draws_new_values():
    vec = sg.random_uniform([3])
    first = vec.eval()
    second = vec.eval()
    assert not np.array_equal(first, second)


def test_random_seed_is_reproducible():
    a = sg.random_normal([2, 3], seed=42).eval()
    b = sg.random_normal([2, 3], seed=42).eval()
    np.testing.assert_array_equal(a, b)


def test_random_shape_from_retained_node_stays_symbolic():
    n = sg.placeholder(sg.int32)
    r = sg.random_normal([n, 2])
    sess = sg.Session()
    assert sess.run(r, retain=[n]) is r
    assert np.shape(sess.run(r, feed_dict={n: 3})) == (3, 2)


def test_print_behaves_like_identity(capsys):
    x = sg.constant([[2.0, 2.0], [3.0, 3.0]])
    y = sg.print_tensor(x, x, message="this is a prefix")
    np.testing.assert_allclose(sg.sin(y).eval(), [[0.9093, 0.9093], [0.1411, 0.1411]], atol=1e-4)
    assert "this is a prefix" in capsys.readouterr().out


def test_group_evaluates_every_input():
    v = sg.variable(0.0)
    sess = sg.Session()
    sess.run(v.initializer)
    assert sess.run(sg.group([v.assign_add(1.0), sg.constant(2.0)])) is None
    assert sess.run(v) == 1.0
