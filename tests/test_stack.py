import pytest

from pevkit.stack import Stack, StackError


def test_push_pop_is_lifo():
    stack = Stack(3)
    for item in ("a", "b", "c"):
        stack.push(item)
    assert [stack.pop(), stack.pop(), stack.pop()] == ["c", "b", "a"]
    assert len(stack) == 0


def test_push_beyond_capacity_fails():
    stack = Stack(1)
    stack.push(1)
    with pytest.raises(StackError):
        stack.push(2)
    assert len(stack) == 1


def test_zero_capacity_stack_is_full():
    stack = Stack(0)
    with pytest.raises(StackError):
        stack.push("x")


def test_grow_allows_more_elements():
    stack = Stack(1)
    stack.push(1)
    stack.grow(2)
    stack.push(2)
    assert stack.capacity == 2
    assert stack.peek() == 2


def test_grow_cannot_decrease():
    stack = Stack(4)
    with pytest.raises(StackError):
        stack.grow(4)
    with pytest.raises(StackError):
        stack.grow(2)
    assert stack.capacity == 4


def test_capacity_limit():
    with pytest.raises(StackError):
        Stack(0x10000)
    stack = Stack(1)
    with pytest.raises(StackError):
        stack.grow(0x10000)


def test_peek_does_not_remove():
    stack = Stack(2)
    stack.push("top")
    assert stack.peek() == "top"
    assert len(stack) == 1


def test_pop_and_peek_on_empty_fail():
    stack = Stack(2)
    with pytest.raises(StackError):
        stack.pop()
    with pytest.raises(StackError):
        stack.peek()