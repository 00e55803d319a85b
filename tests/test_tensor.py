import math

import pytest

from kotml.tensor import Tensor

M2X3 = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
M3X2 = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
M2X2 = [1.0, 2.0, 3.0, 4.0]
V3 = [1.0, 2.0, 3.0]
V2 = [1.0, 2.0]


@pytest.fixture
def matrix_2x3():
    return Tensor(M2X3, (2, 3))


@pytest.fixture
def matrix_3x2():
    return Tensor(M3X2, (3, 2))


@pytest.fixture
def matrix_2x2():
    return Tensor(M2X2, (2, 2))


@pytest.fixture
def vector_3():
    return Tensor(V3, (3,))


@pytest.fixture
def vector_2():
    return Tensor(V2, (2,))


def assert_tensor_near(actual, expected, shape, tol=1e-6):
    assert actual.size == len(expected)
    assert actual.shape == tuple(shape)
    assert actual.data == pytest.approx(expected, abs=tol)


# ----- linear algebra cases ------------------------------------------------


def test_matmul_2x3_3x2(matrix_2x3, matrix_3x2):
    assert_tensor_near(matrix_2x3.matmul(matrix_3x2), [22, 28, 49, 64], (2, 2))


def test_matmul_3x2_2x3(matrix_3x2, matrix_2x3):
    assert_tensor_near(
        matrix_3x2.matmul(matrix_2x3), [9, 12, 15, 19, 26, 33, 29, 40, 51], (3, 3)
    )


def test_square_matmul(matrix_2x2):
    assert_tensor_near(matrix_2x2.matmul(matrix_2x2), [7, 10, 15, 22], (2, 2))


def test_matrix_vector(matrix_2x3, vector_3):
    assert_tensor_near(matrix_2x3.matmul(vector_3.reshape((3, 1))), [14, 32], (2, 1))


def test_vector_matrix(vector_2, matrix_2x3):
    assert_tensor_near(vector_2.reshape((1, 2)).matmul(matrix_2x3), [9, 12, 15], (1, 3))


def test_identity_matmul(matrix_2x2):
    identity = Tensor.eye(2)
    assert_tensor_near(matrix_2x2.matmul(identity), M2X2, (2, 2))
    assert_tensor_near(identity.matmul(matrix_2x2), M2X2, (2, 2))


def test_matmul_operator(matrix_2x3, matrix_3x2):
    assert_tensor_near(matrix_2x3 @ matrix_3x2, [22, 28, 49, 64], (2, 2))


def test_transpose_2x3(matrix_2x3):
    assert_tensor_near(matrix_2x3.transpose(), [1, 4, 2, 5, 3, 6], (3, 2))


def test_transpose_3x2(matrix_3x2):
    assert_tensor_near(matrix_3x2.transpose(), [1, 3, 5, 2, 4, 6], (2, 3))


def test_transpose_square(matrix_2x2):
    assert_tensor_near(matrix_2x2.transpose(), [1, 3, 2, 4], (2, 2))


def test_double_transpose(matrix_2x3):
    assert_tensor_near(matrix_2x3.transpose().transpose(), M2X3, (2, 3))


def test_reshape_vector(vector_3):
    assert_tensor_near(vector_3.reshape((1, 3)), V3, (1, 3))
    assert_tensor_near(vector_3.reshape((3, 1)), V3, (3, 1))


def test_reshape_matrix(matrix_2x3):
    result = matrix_2x3.reshape((3, 2))
    assert_tensor_near(result, M2X3, (3, 2))
    assert result.at((0, 0)) == 1.0
    assert result.at((0, 1)) == 2.0
    assert result.at((1, 0)) == 3.0
    assert result.at((2, 1)) == 6.0


def test_reshape_to_vector(matrix_2x2):
    assert_tensor_near(matrix_2x2.reshape((4,)), M2X2, (4,))


def test_reshape_3d():
    data = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]
    result = Tensor(data, (8,)).reshape((2, 2, 2))
    assert_tensor_near(result, data, (2, 2, 2))
    assert result.at((0, 0, 0)) == 1.0
    assert result.at((0, 0, 1)) == 2.0
    assert result.at((1, 1, 1)) == 8.0


def test_matmul_with_transpose(matrix_2x3):
    result = matrix_2x3.transpose().matmul(matrix_2x3)
    assert_tensor_near(result, [17, 22, 27, 22, 29, 36, 27, 36, 45], (3, 3))


def test_reshape_and_matmul(vector_3, matrix_3x2):
    assert_tensor_near(vector_3.reshape((1, 3)).matmul(matrix_3x2), [22, 28], (1, 2))


def test_single_element_operations():
    single = Tensor([5.0], (1, 1))
    transposed = single.transpose()
    assert transposed.shape == (1, 1)
    assert transposed[0] == 5.0
    product = single.matmul(single)
    assert product.shape == (1, 1)
    assert product[0] == 25.0
    reshaped = single.reshape((1,))
    assert reshaped.shape == (1,)
    assert reshaped[0] == 5.0


def test_large_matmul():
    result = Tensor.ones((50, 100)).matmul(Tensor.ones((100, 30)))
    assert result.shape == (50, 30)
    assert all(value == 100.0 for value in result)


def test_incompatible_matmul(matrix_2x3):
    with pytest.raises(ValueError):
        matrix_2x3.matmul(matrix_2x3)


def test_invalid_reshape(matrix_2x3):
    with pytest.raises(ValueError):
        matrix_2x3.reshape((2, 4))


# ----- construction and access ---------------------------------------------


def test_construction_and_strides(matrix_2x3):
    assert matrix_2x3.shape == (2, 3)
    assert matrix_2x3.strides == (3, 1)
    assert matrix_2x3.ndim == 2
    assert len(matrix_2x3) == 6
    assert not matrix_2x3.empty


def test_shape_mismatch_raises():
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0, 3.0], (2, 2))


def test_nested_data_inferred():
    t = Tensor([[1, 2, 3], [4, 5, 6]])
    assert t.shape == (2, 3)
    assert t.tolist() == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]


def test_ragged_data_raises():
    with pytest.raises(ValueError):
        Tensor([[1, 2], [3]])


def test_empty_tensor():
    t = Tensor()
    assert t.empty
    assert t.size == 0


def test_shape_only_gives_zeros():
    t = Tensor(shape=(2, 2))
    assert t.data == [0.0, 0.0, 0.0, 0.0]


def test_index_bounds(matrix_2x2):
    with pytest.raises(IndexError):
        matrix_2x2[4]
    with pytest.raises(IndexError):
        matrix_2x2.at((2, 0))
    with pytest.raises(ValueError):
        matrix_2x2.at((0,))


def test_setitem_and_set_at(matrix_2x2):
    matrix_2x2[0] = 9.0
    matrix_2x2.set_at((1, 1), 7.0)
    assert matrix_2x2.data == [9.0, 2.0, 3.0, 7.0]


def test_iteration_is_flat(matrix_2x2):
    assert list(matrix_2x2) == M2X2


def test_factories():
    assert Tensor.zeros((2, 2)).data == [0.0] * 4
    assert Tensor.ones((3,)).data == [1.0] * 3
    assert Tensor.full((2,), 0.5).data == [0.5, 0.5]
    assert Tensor.eye(3).tolist() == [[1, 0, 0], [0, 1, 0], [0, 0, 1]]


def test_random_factories():
    normal = Tensor.randn((2, 3), requires_grad=True)
    assert normal.shape == (2, 3)
    assert normal.requires_grad
    uniform = Tensor.rand((100,))
    assert all(0.0 <= value <= 1.0 for value in uniform)


def test_random_uniform_range():
    t = Tensor.zeros((50,))
    t.random_uniform(2.0, 3.0)
    assert all(2.0 <= value <= 3.0 for value in t)


def test_fill(matrix_2x2):
    matrix_2x2.fill(4.0)
    assert matrix_2x2.data == [4.0] * 4


def test_str_and_repr():
    t = Tensor([1.0, 2.0], (2,), requires_grad=True)
    assert str(t) == "Tensor([1.0, 2.0], shape=[2])"
    assert "requires_grad=True" in repr(t)


# ----- arithmetic -----------------------------------------------------------


def test_elementwise_arithmetic(matrix_2x3):
    b = Tensor([6, 5, 4, 3, 2, 1], (2, 3))
    assert (matrix_2x3 + b).data == [7.0] * 6
    assert (matrix_2x3 - b).data == [-5, -3, -1, 1, 3, 5]
    assert (matrix_2x3 * b).data == [6, 10, 12, 12, 10, 6]
    assert (matrix_2x3 / b).data == pytest.approx([1 / 6, 2 / 5, 3 / 4, 4 / 3, 5 / 2, 6])


def test_scalar_arithmetic(matrix_2x2):
    assert (matrix_2x2 * 2.0).data == [2, 4, 6, 8]
    assert (2.0 * matrix_2x2).data == [2, 4, 6, 8]
    assert (matrix_2x2 + 1).data == [2, 3, 4, 5]
    assert (10 - matrix_2x2).data == [9, 8, 7, 6]
    assert (12 / matrix_2x2).data == [12, 6, 4, 3]
    assert (matrix_2x2 / 2).data == [0.5, 1, 1.5, 2]


def test_broadcast_row(matrix_2x3):
    row = Tensor([10, 20, 30], (3,))
    result = matrix_2x3 + row
    assert result.shape == (2, 3)
    assert result.data == [11, 22, 33, 14, 25, 36]


def test_incompatible_broadcast_raises(matrix_2x3, matrix_3x2):
    with pytest.raises(ValueError):
        matrix_2x3.__add__(matrix_3x2)
    assert matrix_2x3.data == M2X3
    assert matrix_2x3.shape == (2, 3)
    assert matrix_3x2.data == M3X2
    assert matrix_3x2.shape == (3, 2)


def test_division_by_zero_gives_inf():
    result = Tensor([1.0, -1.0], (2,)) / 0.0
    assert result.data == [math.inf, -math.inf]


def test_inplace_operations(matrix_2x2):
    storage = matrix_2x2.data
    matrix_2x2 += Tensor([1, 1, 1, 1], (2, 2))
    matrix_2x2 *= 2
    matrix_2x2 -= 1
    matrix_2x2 /= Tensor([1, 1, 1, 1], (2, 2))
    assert storage == [3, 5, 7, 9]


def test_inplace_shape_growth_raises(vector_2, matrix_2x2):
    with pytest.raises(ValueError):
        vector_2.__iadd__(matrix_2x2)
    assert vector_2.data == V2
    assert vector_2.shape == (2,)


# ----- reductions -----------------------------------------------------------


def test_reductions(matrix_2x3):
    assert matrix_2x3.sum().data == [21.0]
    assert matrix_2x3.sum(0).data == [5, 7, 9]
    assert matrix_2x3.sum(1).data == [6, 15]
    assert matrix_2x3.sum(-1).shape == (2,)
    assert matrix_2x3.mean().data == [3.5]
    assert matrix_2x3.mean(0).data == [2.5, 3.5, 4.5]


def test_reduction_bad_axis(matrix_2x3):
    with pytest.raises(ValueError):
        matrix_2x3.sum(2)


def test_sum_of_vector_keeps_one_dimension(vector_3):
    assert vector_3.sum(0).shape == (1,)


# ----- autograd -------------------------------------------------------------


def test_autograd_shared_leaf():
    x = Tensor([2.0, 3.0], (2,), True)
    y = Tensor([1.0, 4.0], (2,), True)
    z = x * y + x
    assert z.data == [4.0, 15.0]
    z.sum().backward()
    assert x.grad == [2.0, 5.0]
    assert y.grad == [2.0, 3.0]


def test_grad_fn_metadata():
    x = Tensor([1.0], (1,), True)
    y = Tensor([2.0], (1,), True)
    product = x * y
    assert product.has_grad_fn
    assert product.num_grad_parents == 2
    assert not x.has_grad_fn
    assert x.num_grad_parents == 0


def test_no_graph_without_grad(matrix_2x2):
    result = matrix_2x2 * 2
    assert not result.requires_grad
    assert not result.has_grad_fn


def test_matmul_gradient():
    a = Tensor([1.0, 2.0], (1, 2), True)
    b = Tensor([3.0, 4.0], (2, 1), True)
    a.matmul(b).sum().backward()
    assert a.grad == [3.0, 4.0]
    assert b.grad == [1.0, 2.0]


def test_mean_gradient():
    x = Tensor([1.0, 2.0, 3.0, 4.0], (2, 2), True)
    x.mean().backward()
    assert x.grad == pytest.approx([0.25] * 4)


def test_reshape_transpose_gradient():
    x = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3), True)
    weights = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (3, 2))
    (x.transpose() * weights).sum().backward()
    assert x.grad == [1.0, 3.0, 5.0, 2.0, 4.0, 6.0]


def test_sum_axis_gradient():
    x = Tensor([1.0, 2.0, 3.0, 4.0], (2, 2), True)
    (x.sum(0) * Tensor([10.0, 20.0], (2,))).sum().backward()
    assert x.grad == [10.0, 20.0, 10.0, 20.0]


def test_division_gradient():
    a = Tensor([6.0], (1,), True)
    b = Tensor([2.0], (1,), True)
    (a / b).backward()
    assert a.grad == [0.5]
    assert b.grad == [-1.5]


def test_gradients_accumulate_and_zero():
    x = Tensor([1.0, 2.0], (2,), True)
    (x * 3).sum().backward()
    (x * 3).sum().backward()
    assert x.grad == [6.0, 6.0]
    x.zero_grad()
    assert x.grad == [0.0, 0.0]


def test_backward_requires_grad(matrix_2x2):
    with pytest.raises(RuntimeError):
        matrix_2x2.sum().backward()


def test_requires_grad_setter(matrix_2x2):
    matrix_2x2.requires_grad = True
    assert matrix_2x2.grad == [0.0] * 4
    matrix_2x2.requires_grad = False
    assert matrix_2x2.grad == []


def test_custom_grad_fn():
    parent = Tensor([1.0, 2.0], (2,), True)
    child = Tensor([5.0, 5.0], (2,), True)
    child.set_grad_fn(lambda grad: [grad * 7.0], [parent])
    child.backward()
    assert child.num_grad_parents == 1
    assert parent.grad == [7.0, 7.0]