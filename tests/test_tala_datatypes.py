import math

import pytest

from tala.tala_datatypes import (
    NULL, BooleanValue, Environment, FunctionValue, ListValue, NativeFnValue,
    NumberValue, ObjectValue, StringValue, format_number,
)
from tala.tala_ast import Body
from tala.tala_errors import FatalError


@pytest.mark.parametrize("value, text", [
    (5.0, "5"),
    (-3.0, "-3"),
    (2.5, "2.5"),
    (0.1, "0.1"),
    (1e-07, "0.0000001"),
    (1e21, "1000000000000000000000"),
    (math.nan, "NaN"),
    (math.inf, "inf"),
    (-math.inf, "-inf"),
])
def test_format_number(value, text):
    assert format_number(value) == text


def test_stringification():
    assert NULL.to_string() == "null"
    assert BooleanValue(True).to_string() == "true"
    assert StringValue("hi").to_string() == "hi"
    assert ListValue([NumberValue(1), StringValue("a")]).to_string() == "[1, a]"
    assert ObjectValue().to_string() == "{}"
    assert ObjectValue({"a": NumberValue(1), "b": NULL}).to_string() == "{\n    a: 1\n    b: null\n}"
    assert NativeFnValue(lambda args, env: NULL).to_string() == "NativeFn"


def test_nested_object_is_indented():
    inner = ObjectValue({"x": NumberValue(1)})
    outer = ObjectValue({"o": inner})
    assert outer.to_string() == "{\n    o: {\n        x: 1\n    }\n}"


@pytest.mark.parametrize("value, truthy", [
    (NULL, False),
    (BooleanValue(False), False),
    (BooleanValue(True), True),
    (NumberValue(0), False),
    (NumberValue(math.nan), False),
    (NumberValue(-1), True),
    (StringValue(""), False),
    (StringValue("0"), True),
    (ListValue(), False),
    (ListValue([NULL]), True),
    (ObjectValue(), False),
    (ObjectValue({"a": NULL}), True),
])
def test_truthiness(value, truthy):
    assert value.is_truthy() is truthy


def test_equality_is_by_type_and_content():
    assert NumberValue(1) == NumberValue(1.0)
    assert NumberValue(1) != StringValue("1")
    assert StringValue("a") == StringValue("a")
    assert ListValue([NumberValue(1)]) == ListValue([NumberValue(1)])
    assert ListValue([NumberValue(1)]) != ListValue([NumberValue(1), NumberValue(2)])
    assert ObjectValue({"a": NumberValue(1)}) == ObjectValue({"a": NumberValue(1)})
    assert ObjectValue({"a": NumberValue(1)}) != ObjectValue({"a": NumberValue(2)})
    reordered = ObjectValue({"b": NULL, "a": NumberValue(1)})
    assert ObjectValue({"a": NumberValue(1), "b": NULL}) == reordered
    assert hash(ObjectValue({"a": NumberValue(1), "b": NULL})) == hash(reordered)
    assert NULL == NULL


def test_native_functions_compare_by_callable():
    def f(args, env):
        return NULL
    assert NativeFnValue(f) == NativeFnValue(f)
    assert NativeFnValue(f) != NativeFnValue(lambda args, env: NULL)


def test_functions_compare_by_closure_identity():
    env = Environment()
    a = FunctionValue("f", [], env, Body())
    b = FunctionValue("g", ["x"], env, Body())
    c = FunctionValue("f", [], Environment(), Body())
    assert a == b
    assert a != c
    assert a.to_string() == "function f()"
    assert b.to_string() == "function g(x)"


def test_only_numbers_are_ordered():
    assert NumberValue(1).compare(NumberValue(2)) < 0
    assert NumberValue(2).compare(NumberValue(2)) == 0
    with pytest.raises(FatalError):
        StringValue("a").compare(StringValue("b"))


def test_clone_is_deep_for_containers():
    original = ObjectValue({"xs": ListValue([NumberValue(1)])})
    copy = original.clone()
    copy.properties["xs"].elements.append(NumberValue(2))
    assert len(original.properties["xs"]) == 1
    assert copy is not original


# --- Environment ---

def test_root_environment_has_literal_constants():
    root = Environment.create_root()
    assert root.lookup_var("null") == NULL
    assert root.lookup_var("true") == BooleanValue(True)
    assert root.lookup_var("false") == BooleanValue(False)
    assert root.is_constant("true")
    assert root.parent is None


def test_root_environment_installs_builtins_as_constants():
    fn = NativeFnValue(lambda args, env: NULL, "noop")
    root = Environment.create_root({"noop": fn})
    assert root.lookup_var("noop") == fn
    with pytest.raises(FatalError) as exc:
        root.assign_var("noop", NULL)
    assert "Cannot re-assign a constant variable (noop)" in str(exc.value)


def test_declare_twice_in_same_scope_is_fatal():
    env = Environment()
    env.declare_var("x", NumberValue(1))
    with pytest.raises(FatalError) as exc:
        env.declare_var("x", NumberValue(2))
    assert "already defined" in str(exc.value)


def test_shadowing_in_child_scope():
    parent = Environment()
    parent.declare_var("x", NumberValue(1))
    child = Environment(parent)
    child.declare_var("x", NumberValue(2))
    assert child.lookup_var("x") == NumberValue(2)
    assert parent.lookup_var("x") == NumberValue(1)


def test_assignment_mutates_the_declaring_scope():
    parent = Environment()
    parent.declare_var("x", NumberValue(1))
    child = Environment(parent)
    child.assign_var("x", NumberValue(5))
    assert parent.lookup_var("x") == NumberValue(5)
    assert "x" not in child.keys()
    assert "x" in child


def test_assigning_an_undeclared_name_is_fatal():
    with pytest.raises(FatalError) as exc:
        Environment().assign_var("nope", NULL)
    assert "Cannot resolve nope" in str(exc.value)


def test_lookup_of_an_undeclared_name_is_fatal():
    env = Environment(Environment())
    with pytest.raises(FatalError):
        env.lookup_var("missing")


def test_lookups_return_independent_copies():
    env = Environment()
    env.declare_var("o", ObjectValue({"a": NumberValue(1)}))
    copy = env.lookup_var("o")
    copy.properties["a"] = NumberValue(99)
    assert env.lookup_var("o").properties["a"] == NumberValue(1)
