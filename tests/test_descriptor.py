import unittest
from depfetch.descriptor import (
    BuildKind,
    BuildOption,
    CompileOptions,
    DependencyDescriptor,
    ExtraDownload,
    LinkTarget,
    infer_archive_format,
)
from depfetch.exceptions import DescriptorError


def make_descriptor(**overrides):
    data = {
        "name": "gmp",
        "version": "6.3.0",
        "source_urls": ["https://ftp.gnu.org/gnu/gmp/gmp-6.3.0.tar.xz"],
        "build_kind": "autotools",
        "expected_artifacts": ["lib/libgmp.a"],
    }
    data.update(overrides)
    return DependencyDescriptor(**data)


class TestInferArchiveFormat(unittest.TestCase):

    def test_known_extensions(self):
        self.assertEqual(infer_archive_format("https://x.org/a-1.0.tar.xz"), "tar.xz")
        self.assertEqual(infer_archive_format("https://x.org/a-1.0.tar.gz"), "tar.gz")
        self.assertEqual(infer_archive_format("https://x.org/a-1.0.tgz"), "tar.gz")
        self.assertEqual(infer_archive_format("https://x.org/A.ZIP"), "zip")

    def test_query_string_is_ignored(self):
        self.assertEqual(infer_archive_format("https://x.org/a.tar.bz2?download=1"), "tar.bz2")

    def test_plain_file(self):
        self.assertEqual(infer_archive_format("https://x.org/json.hpp"), "file")


class TestDependencyDescriptor(unittest.TestCase):

    def test_string_build_kind_is_converted(self):
        descriptor = make_descriptor()
        self.assertIs(descriptor.build_kind, BuildKind.AUTOTOOLS)
        self.assertEqual(descriptor.archive_format, "tar.xz")
        self.assertEqual(descriptor.source_marker, "configure")

    def test_unknown_build_kind(self):
        with self.assertRaises(DescriptorError) as cm:
            make_descriptor(build_kind="scons")
        self.assertIn("scons", str(cm.exception))

    def test_invalid_names(self):
        for name in ("", "..", ".", "a/b"):
            with self.assertRaises(DescriptorError):
                make_descriptor(name=name)

    def test_requires_urls_and_artifacts(self):
        with self.assertRaises(DescriptorError):
            make_descriptor(source_urls=[])
        with self.assertRaises(DescriptorError):
            make_descriptor(expected_artifacts=[])

    def test_link_targets_from_dicts(self):
        descriptor = make_descriptor(link_targets=[
            {"name": "gmpxx", "path": "lib/libgmpxx.a"},
            {"name": "gmp", "path": "lib/libgmp.a"},
        ])
        self.assertEqual(descriptor.link_targets[0], LinkTarget("gmpxx", "lib/libgmpxx.a"))
        self.assertEqual([t.name for t in descriptor.link_targets], ["gmpxx", "gmp"])

    def test_manual_compile_gets_default_options(self):
        descriptor = make_descriptor(build_kind="manual-compile")
        self.assertIsInstance(descriptor.compile, CompileOptions)
        self.assertEqual(descriptor.compile.sources, "*.cpp")

    def test_compile_dict_is_converted(self):
        descriptor = make_descriptor(build_kind="manual-compile", compile={"compiler": "cc", "sources": "sqlite3.c"})
        self.assertEqual(descriptor.compile.compiler, "cc")
        self.assertEqual(descriptor.compile.flags, ["-O2", "-fPIC"])

    def test_archive_name(self):
        self.assertEqual(make_descriptor().archive_name, "gmp-6.3.0.tar.xz")
        header = make_descriptor(
            name="nlohmann-json",
            source_urls=["https://github.com/nlohmann/json/releases/download/v3.12.0/json.hpp"],
            build_kind="header-only",
        )
        self.assertEqual(header.archive_format, "file")
        self.assertEqual(header.archive_name, "json.hpp")

    def test_fingerprint_tracks_build_inputs(self):
        base = make_descriptor()
        self.assertEqual(base.fingerprint(), make_descriptor().fingerprint())
        self.assertNotEqual(base.fingerprint(), make_descriptor(version="6.3.1").fingerprint())
        self.assertNotEqual(base.fingerprint(), make_descriptor(build_flags=["--enable-cxx"]).fingerprint())

    def test_fingerprint_tracks_install_layout(self):
        base = make_descriptor().fingerprint()
        changes = {
            "pre_configure": [["sh", "autogen.sh"]],
            "install_headers": ["include/*.h"],
            "include_subdir": "gmp",
            "install_rule": False,
            "extracted_dir": "gmp-6.3.0",
            "compile_definitions": ["GMP_STATIC"],
            "source_subdir": "src",
        }
        for key, value in changes.items():
            self.assertNotEqual(base, make_descriptor(**{key: value}).fingerprint(), key)

    def test_fingerprint_tracks_enabled_options(self):
        option = {"build_flags": ["--enable-fat"]}
        off = make_descriptor(options={"fat": dict(option, enabled=False)})
        on = make_descriptor(options={"fat": dict(option, enabled=True)})
        self.assertEqual(off.fingerprint(), make_descriptor().fingerprint())
        self.assertNotEqual(on.fingerprint(), off.fingerprint())

    def test_source_fingerprint_ignores_build_flags(self):
        base = make_descriptor()
        self.assertEqual(base.source_fingerprint(), make_descriptor(build_flags=["--enable-cxx"]).source_fingerprint())
        self.assertNotEqual(base.source_fingerprint(), make_descriptor(version="6.3.1").source_fingerprint())
        self.assertNotEqual(
            base.source_fingerprint(),
            make_descriptor(patches=[{"path": "a", "search": "b", "replace": "c"}]).source_fingerprint(),
        )

    def test_fingerprint_ignores_mirrors(self):
        mirrored = make_descriptor(source_urls=[
            "https://ftp.gnu.org/gnu/gmp/gmp-6.3.0.tar.xz",
            "https://ftpmirror.gnu.org/gmp/gmp-6.3.0.tar.xz",
        ])
        self.assertEqual(make_descriptor().fingerprint(), mirrored.fingerprint())

    def test_from_dict(self):
        descriptor = DependencyDescriptor.from_dict("mylib", {
            "version": "1.0",
            "source_urls": ["https://example.com/mylib-1.0.tar.gz"],
            "build_kind": "cmake",
            "expected_artifacts": ["lib/libmylib.a"],
        })
        self.assertEqual(descriptor.name, "mylib")
        self.assertEqual(descriptor.source_marker, "CMakeLists.txt")

    def test_from_dict_rejects_unknown_keys(self):
        with self.assertRaises(DescriptorError) as cm:
            DependencyDescriptor.from_dict("mylib", {
                "version": "1.0",
                "source_urls": ["https://example.com/mylib-1.0.tar.gz"],
                "build_kind": "cmake",
                "expected_artifacts": ["lib/libmylib.a"],
                "buld_flags": [],
            })
        self.assertIn("buld_flags", str(cm.exception))

    def test_from_dict_requires_version(self):
        with self.assertRaises(DescriptorError):
            DependencyDescriptor.from_dict("mylib", {
                "source_urls": ["https://example.com/mylib.tar.gz"],
                "build_kind": "cmake",
                "expected_artifacts": ["lib/libmylib.a"],
            })

    def test_to_dict(self):
        data = make_descriptor().to_dict()
        self.assertEqual(data["build_kind"], "autotools")
        self.assertEqual(data["name"], "gmp")

    def test_git_tag_selects_git_source(self):
        descriptor = make_descriptor(
            source_urls=["https://github.com/AmokHuginnsson/replxx.git"],
            git_tag="release-0.0.4",
            build_kind="cmake",
        )
        self.assertEqual(descriptor.archive_format, "git")
        with self.assertRaises(DescriptorError):
            make_descriptor(archive_format="git")


class TestBuildOptions(unittest.TestCase):

    def setUp(self):
        self.options = {
            "models": {
                "description": "pre-trained models",
                "compile_definitions": ['MODELS_PATH="{install_dir}/share/models"'],
                "expected_artifacts": ["share/models/face.dat"],
                "downloads": [
                    {"url": "https://example.com/face.dat.bz2", "dest": "share/models", "decompress": "bz2"},
                ],
            },
            "fat": {"enabled": True, "build_flags": ["--enable-fat"], "system_libs": ["m"]},
        }

    def test_option_tables_are_converted(self):
        descriptor = make_descriptor(options=self.options)
        models = descriptor.options["models"]
        self.assertIsInstance(models, BuildOption)
        self.assertFalse(models.enabled)
        self.assertIsInstance(models.downloads[0], ExtraDownload)
        self.assertEqual(models.downloads[0].installed_name, "face.dat")

    def test_disabled_option_adds_nothing(self):
        descriptor = make_descriptor(build_flags=["--enable-cxx"], options=self.options)
        self.assertEqual([name for name, _ in descriptor.enabled_options()], ["fat"])
        self.assertEqual(descriptor.effective_build_flags, ["--enable-cxx", "--enable-fat"])
        self.assertEqual(descriptor.effective_system_libs, ["m"])
        self.assertEqual(descriptor.effective_artifacts, ["lib/libgmp.a"])
        self.assertEqual(descriptor.extra_downloads, [])

    def test_enabled_option_adds_downloads_and_artifacts(self):
        self.options["models"]["enabled"] = True
        descriptor = make_descriptor(options=self.options)
        self.assertEqual(descriptor.effective_artifacts, ["lib/libgmp.a", "share/models/face.dat"])
        self.assertEqual([item.url for item in descriptor.extra_downloads], ["https://example.com/face.dat.bz2"])
        self.assertEqual(descriptor.effective_compile_definitions, ['MODELS_PATH="{install_dir}/share/models"'])

    def test_undefined_option(self):
        with self.assertRaises(DescriptorError) as cm:
            make_descriptor(options={"models": True})
        self.assertIn("models", str(cm.exception))

    def test_round_trip_through_dict(self):
        descriptor = make_descriptor(options=self.options)
        again = DependencyDescriptor.from_dict("gmp", descriptor.to_dict())
        self.assertEqual(again.options, descriptor.options)
        self.assertEqual(again.fingerprint(), descriptor.fingerprint())
