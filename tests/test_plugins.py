from __future__ import annotations

import json
import unittest

import yaml

from chaindeploy.errors import ConfigValidationError, PluginExecutionError
from chaindeploy.plugins import (
    PLUGINS,
    JsonExpander,
    JsonFilter,
    JsonMinifier,
    YamlWriter,
    process_output,
    register_plugin,
    resolve_plugin,
)


OUTPUT_OBJECT = {
    "ropsten": {
        "Store": {"address": "0x" + "1" * 40, "bytecode": "0x6060", "inputs": [], "receipt": {"status": 1}},
    },
    "main": {"Token": {"address": "0x" + "2" * 40}},
}


def run(plugins, output_object=OUTPUT_OBJECT):
    return process_output(plugins, output_object, {}, {}, {}, None)


class ProcessOutputTests(unittest.TestCase):
    def test_no_plugins_returns_indented_json(self) -> None:
        output = run([])
        self.assertEqual(output, json.dumps(OUTPUT_OBJECT, indent=2))

    def test_plugins_must_be_a_list(self) -> None:
        for plugins in ({}, "json-minifier", None, JsonMinifier()):
            with self.assertRaises(ConfigValidationError):
                run(plugins)

    def test_plugins_are_chained_in_order(self) -> None:
        seen: list[str] = []

        class Upper:
            def process(self, *, output, **_):
                seen.append(output)
                return output.upper()

        def suffix(*, output, **_):
            seen.append(output)
            return output + "!"

        output = run([JsonMinifier(), Upper(), suffix])
        minified = json.dumps(OUTPUT_OBJECT, separators=(",", ":"))
        self.assertEqual(seen, [minified, minified.upper()])
        self.assertEqual(output, minified.upper() + "!")

    def test_plugin_receives_pipeline_context(self) -> None:
        received: dict = {}

        def capture(**kwargs):
            received.update(kwargs)
            return kwargs["output"]

        process_output([capture], {"a": {}}, {"entry": "x"}, {"base": {}}, {"Store": {}}, "env")
        self.assertEqual(received["config"], {"entry": "x"})
        self.assertEqual(received["base_artifacts"], {"base": {}})
        self.assertEqual(received["artifacts"], {"Store": {}})
        self.assertEqual(received["environment"], "env")

    def test_failing_plugin_is_named(self) -> None:
        def broken(**_):
            raise KeyError("address")

        with self.assertRaises(PluginExecutionError) as ctx:
            run([JsonMinifier(), broken])
        self.assertEqual(ctx.exception.plugin, "broken")
        self.assertIsInstance(ctx.exception.cause, KeyError)

    def test_non_string_result_is_rejected(self) -> None:
        with self.assertRaises(PluginExecutionError):
            run([lambda **kwargs: {"not": "text"}])

    def test_unknown_plugin_fails_before_any_runs(self) -> None:
        calls: list[str] = []

        def first(*, output, **_):
            calls.append("first")
            return output

        with self.assertRaises(ConfigValidationError):
            run([first, "no-such-plugin"])
        self.assertEqual(calls, [])


class BuiltinPluginTests(unittest.TestCase):
    def test_minifier(self) -> None:
        self.assertEqual(run(["json-minifier"]), json.dumps(OUTPUT_OBJECT, separators=(",", ":")))

    def test_expander(self) -> None:
        self.assertEqual(run([JsonMinifier(), JsonExpander(indent=4)]), json.dumps(OUTPUT_OBJECT, indent=4))

    def test_filter_fields_and_environments(self) -> None:
        output = json.loads(run([JsonFilter(include=["address"], environments=["ropsten"])]))
        self.assertEqual(output, {"ropsten": {"Store": {"address": "0x" + "1" * 40}}})

    def test_filter_without_options_keeps_everything(self) -> None:
        self.assertEqual(json.loads(run([JsonFilter()])), OUTPUT_OBJECT)

    def test_yaml_writer(self) -> None:
        self.assertEqual(yaml.safe_load(run([YamlWriter])), OUTPUT_OBJECT)

    def test_registry(self) -> None:
        self.assertIsInstance(resolve_plugin("json-expander"), JsonExpander)
        self.assertIsInstance(resolve_plugin("yaml"), YamlWriter)

    def test_register_plugin(self) -> None:
        class Reverse:
            def process(self, *, output, **_):
                return output[::-1]

        register_plugin("reverse", Reverse)
        try:
            self.assertEqual(run(["json-minifier", "reverse"]), json.dumps(OUTPUT_OBJECT, separators=(",", ":"))[::-1])
        finally:
            PLUGINS.pop("reverse", None)

    def test_non_callable_reference_is_rejected(self) -> None:
        with self.assertRaises(ConfigValidationError):
            resolve_plugin(42)


if __name__ == "__main__":
    unittest.main()
