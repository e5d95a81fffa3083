"""Tests for CLI argument handling and interactive configuration resolution."""

import os
import shutil
import tempfile
import unittest
from unittest import mock

from OrmPacker.cli import (
    ConfigResolver,
    ConfigurationAborted,
    FLAG_ORDER,
    main,
    parse_bool,
)
from OrmPacker.config import PackerConfig
from OrmPacker.core import FileGroupingError

from conftest import write_gray, write_rgba


def _scripted(*answers):
    """Return a resolver fed from ``answers`` that records everything it prints."""
    queue = list(answers)
    printed = []

    def _input():
        if not queue:
            raise EOFError
        return queue.pop(0)

    resolver = ConfigResolver(input_fn=_input, output_fn=printed.append)
    return resolver, printed, queue


class TestParseBool(unittest.TestCase):
    def test_values(self):
        self.assertTrue(parse_bool("True"))
        self.assertFalse(parse_bool(" false "))
        self.assertIsNone(parse_bool("yes"))
        self.assertIsNone(parse_bool(None))


class TestConfigResolver(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_all_positional_flags_skip_prompts(self):
        resolver, printed, _ = _scripted()
        flags = ["true", "true", "false", "true", "false", "true", "false", "true"]
        config = resolver.resolve(PackerConfig(), self.tmpdir, "JPG", flags)

        self.assertEqual(config.search_path, os.path.abspath(self.tmpdir))
        self.assertEqual(config.extension, "jpg")
        self.assertEqual(
            [getattr(config, name) for name in FLAG_ORDER],
            [True, True, False, True, False, True, False, True],
        )
        self.assertEqual(printed, [])

    def test_prompts_follow_conditions(self):
        # process_individual=no, process_orm=yes, unreal=yes, extract=yes
        resolver, printed, queue = _scripted("n", "Y", "yes", "y")
        config = resolver.resolve(PackerConfig(), self.tmpdir, "png")

        self.assertFalse(config.process_individual)
        self.assertTrue(config.process_orm)
        self.assertTrue(config.is_unreal_orm_format)
        self.assertTrue(config.extract_from_orm)
        self.assertEqual(queue, [])
        self.assertEqual(len(printed), 4)
        self.assertFalse(any("DELETE" in line for line in printed))

    def test_unrecognized_answer_means_no(self):
        resolver, _, _ = _scripted("maybe", "n", "", "", "", "")
        config = resolver.resolve(PackerConfig(), self.tmpdir, "png")
        self.assertFalse(config.process_individual)
        self.assertFalse(config.process_orm)

    def test_invalid_positional_flag_falls_back_to_prompt(self):
        resolver, printed, _ = _scripted("y")
        config = resolver.resolve(
            PackerConfig(), self.tmpdir, "png", ["nope", "false"],
        )
        self.assertTrue(config.process_individual)
        self.assertFalse(config.process_orm)
        self.assertIn("individual textures", printed[0])

    def test_unknown_extension_defaults_to_png(self):
        resolver, printed, _ = _scripted()
        self.assertEqual(resolver.resolve_extension("tga"), "png")
        self.assertIn("Moving forward with png", printed)

    def test_extension_prompted_when_missing(self):
        resolver, _, _ = _scripted("exr")
        self.assertEqual(resolver.resolve_extension(None), "exr")

    def test_relative_path_found_under_cwd(self):
        os.makedirs(os.path.join(self.tmpdir, "textures"))
        resolver = ConfigResolver(output_fn=lambda _m: None, cwd=self.tmpdir)
        with mock.patch("OrmPacker.cli.os.path.isdir",
                        side_effect=lambda p: p != "textures" and os.path.exists(p)):
            path = resolver.resolve_search_path("textures")
        self.assertEqual(path, os.path.abspath(os.path.join(self.tmpdir, "textures")))

    def test_missing_path_declined_aborts(self):
        resolver, printed, _ = _scripted("n")
        missing = os.path.join(self.tmpdir, "missing")
        with self.assertRaises(ConfigurationAborted):
            resolver.resolve_search_path(missing)
        self.assertFalse(os.path.exists(missing))
        self.assertIn("Please restart the application with a valid directory path.", printed)

    def test_missing_path_created_on_yes(self):
        resolver, _, _ = _scripted("Y")
        missing = os.path.join(self.tmpdir, "new", "dir")
        self.assertEqual(resolver.resolve_search_path(missing), os.path.abspath(missing))
        self.assertTrue(os.path.isdir(missing))

    def test_empty_path_aborts(self):
        resolver, printed, _ = _scripted("")
        with self.assertRaises(ConfigurationAborted):
            resolver.resolve_search_path(None)
        self.assertIn("You need to enter a valid path", printed)

    def test_non_interactive_keeps_defaults(self):
        resolver = ConfigResolver(
            input_fn=mock.Mock(side_effect=AssertionError("prompted")),
            output_fn=lambda _m: None,
            interactive=False,
        )
        config = resolver.resolve(PackerConfig(), self.tmpdir)
        self.assertEqual(config.extension, "png")
        self.assertTrue(config.save_unity_orm)
        self.assertFalse(config.delete_non_orm_files)

    def test_non_interactive_missing_path_aborts(self):
        resolver = ConfigResolver(output_fn=lambda _m: None, interactive=False)
        with self.assertRaises(ConfigurationAborted):
            resolver.resolve_search_path(os.path.join(self.tmpdir, "absent"))


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_end_to_end_non_interactive(self):
        write_gray(os.path.join(self.tmpdir, "M_AO.png"), 200)
        write_gray(os.path.join(self.tmpdir, "M_Roughness.png"), 80)
        write_rgba(os.path.join(self.tmpdir, "M_Metallic.png"), (30, 30, 30, 255))

        with mock.patch("OrmPacker.cli.setup_logging"):
            main([self.tmpdir, "png", "--non-interactive", "--workers", "2"])

        self.assertTrue(os.path.exists(os.path.join(self.tmpdir, "M_ormue.png")))
        self.assertTrue(os.path.exists(os.path.join(self.tmpdir, "M_ormunity.png")))

    def test_failures_exit_non_zero(self):
        with open(os.path.join(self.tmpdir, "Bad_orm.png"), "wb") as f:
            f.write(b"garbage")
        with mock.patch("OrmPacker.cli.setup_logging"):
            with self.assertRaises(SystemExit) as ctx:
                main([self.tmpdir, "png", "--non-interactive"])
        self.assertEqual(ctx.exception.code, 1)

    def test_declined_path_exits(self):
        resolver, _, _ = _scripted("n")
        with self.assertRaises(SystemExit) as ctx:
            main([os.path.join(self.tmpdir, "missing"), "png"], resolver=resolver)
        self.assertEqual(ctx.exception.code, 1)

    def test_grouping_error_exits(self):
        with mock.patch("OrmPacker.cli.setup_logging"), \
                mock.patch("OrmPacker.pipeline.PackerPipeline.run",
                           side_effect=FileGroupingError("no dir")):
            with self.assertRaises(SystemExit) as ctx:
                main([self.tmpdir, "png", "--non-interactive"])
        self.assertEqual(ctx.exception.code, 1)

    def test_generate_config(self):
        dest = os.path.join(self.tmpdir, "packer.yaml")
        main(["--generate-config", "--config", dest])
        self.assertEqual(PackerConfig.from_yaml(dest), PackerConfig())

    def test_config_file_disables_prompts(self):
        cfg_path = os.path.join(self.tmpdir, "packer.yaml")
        config = PackerConfig()
        config.search_path = self.tmpdir
        config.process_individual = False
        config.to_yaml(cfg_path)

        with mock.patch("OrmPacker.cli.setup_logging"), \
                mock.patch("builtins.input", side_effect=AssertionError("prompted")), \
                mock.patch("OrmPacker.pipeline.PackerPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value.failed = 0
            main(["--config", cfg_path])

        used = pipeline_cls.call_args[0][0]
        self.assertFalse(used.process_individual)
        self.assertEqual(used.search_path, os.path.abspath(self.tmpdir))

    def test_too_many_flags_rejected(self):
        with self.assertRaises(SystemExit) as ctx:
            main([self.tmpdir, "png"] + ["true"] * 9)
        self.assertEqual(ctx.exception.code, 2)

    def test_missing_config_file(self):
        with self.assertRaises(SystemExit) as ctx:
            main(["--config", os.path.join(self.tmpdir, "absent.yaml")])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
