"""Tests for the hook registry and pipeline ordering."""

import pytest

from immutable_hooks.errors import UnknownHookError
from immutable_hooks.hooks import AFTER, BEFORE, HookMethods, HookPipeline, Hooks


def test_handlers_run_in_priority_order():
    calls = []
    first, second = HookMethods(), HookMethods()
    second.before("insert", 10, lambda target, args: calls.append("late"))
    first.before("insert", -10, lambda target, args: calls.append("early"))
    second.before("insert", None, lambda target, args: calls.append("default"))

    pipeline = HookPipeline()
    pipeline.add(second)
    pipeline.add(first)
    pipeline.run(None, "insert", lambda doc: doc, [{}])

    assert calls == ["early", "default", "late"]


def test_equal_priorities_keep_registration_order():
    calls = []
    methods = HookMethods()
    methods.after("update", 0, lambda target, result, args, context: calls.append(1) or result)
    methods.after("update", 0, lambda target, result, args, context: calls.append(2) or result)

    pipeline = HookPipeline()
    pipeline.add(methods)
    pipeline.run(None, "update", lambda doc: doc, [{}])

    assert calls == [1, 2]
    assert [r.phase for r in pipeline.handlers("update", AFTER)] == [AFTER, AFTER]
    assert pipeline.handlers("update", BEFORE) == []


def test_before_rewrites_args_and_context_reaches_same_hook():
    seen = {}
    ours, theirs = HookMethods(), HookMethods()

    def rewrite(target, args):
        args[0] = {"rewritten": True}
        return "our-context"

    ours.before("insert", -1, rewrite)
    ours.after("insert", -1, lambda target, result, args, context: seen.setdefault("ours", context) and result)
    theirs.after("insert", 0, lambda target, result, args, context: seen.setdefault("theirs", context) or result)

    pipeline = HookPipeline()
    pipeline.add(ours)
    pipeline.add(theirs)
    result = pipeline.run("target", "insert", lambda doc: doc, [{"original": True}])

    assert result == {"rewritten": True}
    assert seen == {"ours": "our-context", "theirs": None}


def test_after_handlers_replace_result():
    methods = HookMethods()
    methods.after("remove", 0, lambda target, result, args, context: result + 1)
    methods.after("remove", 1, lambda target, result, args, context: result * 10)

    pipeline = HookPipeline()
    pipeline.add(methods)

    assert pipeline.run(None, "remove", lambda value: value, [1]) == 20


def test_hooks_registry():
    hooks = Hooks()
    factory = lambda methods, options: None
    hooks.register("noop", factory)

    assert hooks.get("noop") is factory
    assert hooks.names() == ["noop"]
    with pytest.raises(UnknownHookError):
        hooks.get("missing")


def test_hooks_create_passes_options():
    received = {}

    def factory(methods, options):
        received["options"] = options
        methods.before("insert", 0, lambda target, args: None)
        return lambda collection: None

    hooks = Hooks()
    hooks.register("probe", factory)
    methods, attach = hooks.create("probe", {"flag": True})

    assert received["options"] == {"flag": True}
    assert len(methods.registrations) == 1
    assert attach("collection") is None
