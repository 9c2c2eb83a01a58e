"""Unit tests: IndexableEvaluator — resolution, caching and invocation.

Covers:
- Default indexable path (no callback configured)
- Callable, method-name and expression callbacks
- Memoized resolution (observable through a counting expression language)
- Error propagation for misconfigured types and failing callbacks
- Thread-safety of first resolution
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from indexable.callbacks import CallbackKind
from indexable.evaluator import IndexableChecker, IndexableEvaluator
from indexable.exceptions import (
    ExpressionSyntaxError,
    InvalidConfigurationError,
    UnsupportedFeatureError,
)
from indexable.expression import (
    CompiledExpression,
    PythonExpressionLanguage,
    UnavailableExpressionLanguage,
)
from indexable.keys import split_type_key, type_key
from indexable.naming import StaticTypeNameRegistry

# ── Fixtures ──────────────────────────────────────────


class Product:
    def __init__(self, price: int, in_stock: bool = True) -> None:
        self.price = price
        self.in_stock = in_stock


class Post:
    def __init__(self, published: bool) -> None:
        self.published = published

    def is_published(self) -> bool:
        return self.published

    def status(self) -> str:
        return "live" if self.published else ""


class CountingLanguage:
    """Expression language spy recording every compile call."""

    def __init__(self) -> None:
        self.inner = PythonExpressionLanguage()
        self.compile_calls = 0
        self.names_seen: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def compile(self, text: str, names: Iterable[str]) -> CompiledExpression:
        names = tuple(names)
        with self._lock:
            self.compile_calls += 1
            self.names_seen.append(names)
        return self.inner.compile(text, names)

    def evaluate(self, expression: CompiledExpression, variables: Mapping[str, Any]) -> Any:
        return self.inner.evaluate(expression, variables)


@pytest.fixture()
def language() -> CountingLanguage:
    return CountingLanguage()


# ── Composite keys ────────────────────────────────────


class TestTypeKey:
    def test_joins_with_slash(self) -> None:
        assert type_key("blog", "post") == "blog/post"

    @pytest.mark.parametrize(("index", "type_"), [("", "post"), ("blog", "")])
    def test_empty_names_rejected(self, index: str, type_: str) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            type_key(index, type_)

    def test_split_round_trips(self) -> None:
        assert split_type_key("shop/product") == ("shop", "product")

    def test_split_rejects_plain_name(self) -> None:
        with pytest.raises(ValueError, match="Not a composite type key"):
            split_type_key("shop")


# ── Default: no callback configured ───────────────────


class TestNoCallback:
    def test_unconfigured_type_is_indexable(self) -> None:
        evaluator = IndexableEvaluator({})
        assert evaluator.is_object_indexable("blog", "post", object()) is True

    def test_other_types_unaffected_by_configuration(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": lambda o: False})
        assert evaluator.is_object_indexable("blog", "post", Post(False)) is True

    def test_absence_is_cached(self) -> None:
        evaluator = IndexableEvaluator({})
        evaluator.is_object_indexable("blog", "post", None)
        callback = evaluator.callback_for("blog", "post")
        assert callback is not None
        assert callback.kind == CallbackKind.NONE
        assert evaluator.resolved_keys() == frozenset({"blog/post"})

    def test_empty_index_name_raises(self) -> None:
        evaluator = IndexableEvaluator({})
        with pytest.raises(ValueError):
            evaluator.is_object_indexable("", "post", Post(True))

    @given(
        index=st.text(alphabet="abcdefghijklmnopqrstuvwxyz_-", min_size=1, max_size=12),
        type_=st.text(alphabet="abcdefghijklmnopqrstuvwxyz_-", min_size=1, max_size=12),
        value=st.one_of(st.integers(), st.text(), st.none()),
    )
    @settings(max_examples=50)
    def test_any_unconfigured_key_is_indexable(self, index: str, type_: str, value: Any) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        if (index, type_) == ("shop", "product"):
            return
        assert evaluator.is_object_indexable(index, type_, value) is True


# ── Callable callbacks ────────────────────────────────


class TestCallableCallback:
    def test_callable_receives_object(self) -> None:
        seen: list[Any] = []

        def check(obj: Any) -> bool:
            seen.append(obj)
            return True

        evaluator = IndexableEvaluator({"shop/product": check})
        product = Product(10)
        assert evaluator.is_object_indexable("shop", "product", product) is True
        assert seen == [product]

    def test_result_coerced_to_bool(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": lambda o: o.price})
        assert evaluator.is_object_indexable("shop", "product", Product(7)) is True
        assert evaluator.is_object_indexable("shop", "product", Product(0)) is False

    def test_kind_is_callable(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": lambda o: True})
        evaluator.is_object_indexable("shop", "product", Product(1))
        assert evaluator.callback_for("shop", "product").kind == CallbackKind.CALLABLE

    def test_callable_errors_propagate_unchanged(self) -> None:
        def broken(obj: Any) -> bool:
            raise KeyError("missing")

        evaluator = IndexableEvaluator({"shop/product": broken})
        with pytest.raises(KeyError, match="missing"):
            evaluator.is_object_indexable("shop", "product", Product(1))

    @given(value=st.integers())
    @settings(max_examples=50)
    def test_matches_direct_call(self, value: int) -> None:
        evaluator = IndexableEvaluator({"x/y": lambda o: o % 3})
        assert evaluator.is_object_indexable("x", "y", value) is bool(value % 3)


# ── Method-name callbacks ─────────────────────────────


class TestMethodCallback:
    def test_published_post_is_indexable(self) -> None:
        evaluator = IndexableEvaluator({"blog/post": "is_published"})
        assert evaluator.is_object_indexable("blog", "post", Post(True)) is True

    def test_unpublished_post_is_not_indexable(self) -> None:
        evaluator = IndexableEvaluator({"blog/post": "is_published"})
        assert evaluator.is_object_indexable("blog", "post", Post(False)) is False

    def test_method_result_coerced_to_bool(self) -> None:
        evaluator = IndexableEvaluator({"blog/post": "status"})
        assert evaluator.is_object_indexable("blog", "post", Post(True)) is True
        assert evaluator.is_object_indexable("blog", "post", Post(False)) is False

    def test_method_takes_precedence_over_expression(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator({"blog/post": "is_published"}, expression_language=language)
        evaluator.is_object_indexable("blog", "post", Post(True))
        assert evaluator.callback_for("blog", "post").kind == CallbackKind.METHOD
        assert language.compile_calls == 0

    def test_method_works_without_expression_language(self) -> None:
        evaluator = IndexableEvaluator(
            {"blog/post": "is_published"},
            expression_language=UnavailableExpressionLanguage(),
        )
        assert evaluator.is_object_indexable("blog", "post", Post(True)) is True


# ── Expression callbacks ──────────────────────────────


class TestExpressionCallback:
    def test_positive_price_is_indexable(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        assert evaluator.is_object_indexable("shop", "product", Product(10)) is True

    def test_negative_price_is_not_indexable(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        assert evaluator.is_object_indexable("shop", "product", Product(-5)) is False

    def test_binds_object_and_class_variable(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator(
            {"shop/product": "product.price > 0 and object.in_stock"},
            expression_language=language,
        )
        assert evaluator.is_object_indexable("shop", "product", Product(3)) is True
        assert evaluator.is_object_indexable("shop", "product", Product(3, in_stock=False)) is False
        assert language.names_seen == [("object", "product")]

    def test_plain_value_binds_only_object(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator(
            {"shop/product": "object['price'] > 0"},
            expression_language=language,
        )
        assert evaluator.is_object_indexable("shop", "product", {"price": 4}) is True
        assert language.names_seen == [("object",)]

    def test_type_name_provider_is_injectable(self) -> None:
        names = StaticTypeNameRegistry({Product: "item"})
        evaluator = IndexableEvaluator({"shop/product": "item.price > 0"}, type_names=names)
        assert evaluator.is_object_indexable("shop", "product", Product(2)) is True

    def test_invalid_expression_raises_invalid_configuration(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "this is not valid &&& syntax"})
        with pytest.raises(InvalidConfigurationError) as exc_info:
            evaluator.is_object_indexable("shop", "product", Product(1))
        assert exc_info.value.type_key == "shop/product"
        assert "shop/product" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ExpressionSyntaxError)

    def test_undeclared_variable_raises_invalid_configuration(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "order.total > 0"})
        with pytest.raises(InvalidConfigurationError):
            evaluator.is_object_indexable("shop", "product", Product(1))

    def test_format_string_cannot_reach_globals(self) -> None:
        evaluator = IndexableEvaluator(
            {"shop/product": "'{0.__class__.__init__.__globals__[__name__]}'.format(object) != ''"}
        )
        with pytest.raises(InvalidConfigurationError):
            evaluator.is_object_indexable("shop", "product", Product(1))

    def test_failed_resolution_is_not_cached(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator({"shop/product": "price >"}, expression_language=language)
        for _ in range(2):
            with pytest.raises(InvalidConfigurationError):
                evaluator.is_object_indexable("shop", "product", Product(1))
        assert language.compile_calls == 2
        assert evaluator.resolved_keys() == frozenset()

    def test_unavailable_expression_language(self) -> None:
        evaluator = IndexableEvaluator(
            {"shop/product": "object.price > 0"},
            expression_language=UnavailableExpressionLanguage(),
        )
        with pytest.raises(UnsupportedFeatureError):
            evaluator.is_object_indexable("shop", "product", Product(1))

    def test_evaluation_errors_propagate(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        evaluator.is_object_indexable("shop", "product", Product(1))
        with pytest.raises(AttributeError):
            evaluator.is_object_indexable("shop", "product", Post(True))

    @given(price=st.integers(min_value=-10_000, max_value=10_000))
    @settings(max_examples=50)
    def test_expression_matches_python(self, price: int) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        assert evaluator.is_object_indexable("shop", "product", Product(price)) is (price > 0)


# ── Invalid specifications ────────────────────────────


class TestInvalidSpecification:
    def test_integer_spec_raises_naming_key(self) -> None:
        evaluator = IndexableEvaluator({"x/y": 12345})
        with pytest.raises(InvalidConfigurationError) as exc_info:
            evaluator.is_object_indexable("x", "y", Product(1))
        assert exc_info.value.type_key == "x/y"
        assert '"x/y"' in exc_info.value.message

    def test_invalid_configuration_is_value_error(self) -> None:
        evaluator = IndexableEvaluator({"x/y": ["not", "callable"]})
        with pytest.raises(ValueError):
            evaluator.is_object_indexable("x", "y", Product(1))


# ── Memoization & concurrency ─────────────────────────


class TestResolutionCache:
    def test_expression_compiled_once(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"}, expression_language=language)
        for price in (1, -1, 5):
            evaluator.is_object_indexable("shop", "product", Product(price))
        assert language.compile_calls == 1

    def test_callback_for_before_resolution(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        assert evaluator.callback_for("shop", "product") is None

    def test_same_callback_returned(self) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        evaluator.is_object_indexable("shop", "product", Product(1))
        first = evaluator.callback_for("shop", "product")
        evaluator.is_object_indexable("shop", "product", Product(2))
        assert evaluator.callback_for("shop", "product") is first

    def test_configuration_copied_at_construction(self) -> None:
        callbacks: dict[str, Any] = {}
        evaluator = IndexableEvaluator(callbacks)
        callbacks["blog/post"] = "is_published"
        assert evaluator.is_object_indexable("blog", "post", Post(False)) is True
        assert "blog/post" not in evaluator.callbacks

    def test_concurrent_first_use_compiles_once(self, language: CountingLanguage) -> None:
        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"}, expression_language=language)
        barrier = threading.Barrier(8)
        results: list[bool] = []
        results_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            result = evaluator.is_object_indexable("shop", "product", Product(1))
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [True] * 8
        assert language.compile_calls == 1


# ── Batch filtering ───────────────────────────────────


class TestFilterIndexable:
    def test_keeps_indexable_in_order(self) -> None:
        evaluator = IndexableEvaluator({"blog/post": "is_published"})
        posts = [Post(True), Post(False), Post(True)]
        assert evaluator.filter_indexable("blog", "post", posts) == [posts[0], posts[2]]

    def test_unconfigured_keeps_everything(self) -> None:
        evaluator = IndexableEvaluator({})
        assert evaluator.filter_indexable("blog", "post", [1, 2, 3]) == [1, 2, 3]


class TestProtocol:
    def test_evaluator_is_indexable_checker(self) -> None:
        assert isinstance(IndexableEvaluator({}), IndexableChecker)
