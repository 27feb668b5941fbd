import os
import sys
import tempfile
import unittest
from depfetch.cache import DependencyPaths
from depfetch.descriptor import DependencyDescriptor
from depfetch.exceptions import BuildError
from depfetch.utils.build_system_resolver import (
    STAGES,
    get_resolver,
)
from depfetch.utils.build_system_resolver.autotools import AutotoolsResolver, STATIC_PIC_FLAGS
from depfetch.utils.build_system_resolver.cmake import CMakeResolver
from depfetch.utils.build_system_resolver.header_only import HeaderOnlyResolver
from depfetch.utils.build_system_resolver.make_direct import MakeDirectResolver
from depfetch.utils.build_system_resolver.manual_compile import ManualCompileResolver
from depfetch.utils.build_system_resolver.python_configure import PythonConfigureResolver


def make_descriptor(**overrides):
    data = {
        "name": "mylib",
        "version": "1.0",
        "source_urls": ["https://example.com/mylib-1.0.tar.gz"],
        "build_kind": "autotools",
        "expected_artifacts": ["lib/libmylib.a"],
        "link_targets": [{"name": "mylib", "path": "lib/libmylib.a"}],
    }
    data.update(overrides)
    return DependencyDescriptor(**data)


def write(path, content=""):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(content)


class ResolverTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.download_root = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def resolver_for(self, **overrides):
        descriptor = make_descriptor(**overrides)
        paths = DependencyPaths.for_descriptor(descriptor, self.download_root)
        return get_resolver(descriptor, paths, jobs=4)


class TestGetResolver(ResolverTestCase):

    def test_one_strategy_per_build_kind(self):
        expected = {
            "autotools": AutotoolsResolver,
            "cmake": CMakeResolver,
            "python-configure": PythonConfigureResolver,
            "make-direct": MakeDirectResolver,
            "header-only": HeaderOnlyResolver,
            "manual-compile": ManualCompileResolver,
        }
        for kind, cls in expected.items():
            self.assertIsInstance(self.resolver_for(build_kind=kind), cls)

    def test_commands_cover_every_stage(self):
        for kind in ("autotools", "cmake", "python-configure", "make-direct", "header-only"):
            commands = self.resolver_for(build_kind=kind).get_build_commands()
            self.assertEqual(set(commands), set(STAGES))


class TestAutotoolsResolver(ResolverTestCase):

    def test_configure_make_install(self):
        resolver = self.resolver_for(build_flags=["--enable-cxx"])
        commands = resolver.get_build_commands()
        configure = commands["configure"][0]
        self.assertEqual(configure[0], os.path.join(resolver.paths.source_dir, "configure"))
        self.assertEqual(configure[1], f"--prefix={resolver.paths.install_dir}")
        self.assertEqual(configure[2:], STATIC_PIC_FLAGS + ["--enable-cxx"])
        self.assertEqual(commands["build"], [["make", "-j4"]])
        self.assertEqual(commands["install"], [["make", "install"]])
        self.assertEqual(commands["pre_configure"], [])

    def test_autogen_when_configure_missing(self):
        resolver = self.resolver_for()
        write(os.path.join(resolver.paths.source_dir, "autogen.sh"))
        self.assertEqual(resolver.get_build_commands()["pre_configure"], [["sh", "autogen.sh"]])

    def test_explicit_pre_configure(self):
        resolver = self.resolver_for(pre_configure=[["autoreconf", "-fi"]])
        self.assertEqual(resolver.get_build_commands()["pre_configure"], [["autoreconf", "-fi"]])


class TestCMakeResolver(ResolverTestCase):

    def test_out_of_tree_build(self):
        resolver = self.resolver_for(build_kind="cmake", build_flags=["-DBUILD_SHELL=FALSE"])
        commands = resolver.get_build_commands()
        configure = commands["configure"][0]
        self.assertEqual(configure[:5], ["cmake", "-S", resolver.paths.source_dir, "-B", resolver.paths.build_dir])
        self.assertIn(f"-DCMAKE_INSTALL_PREFIX={resolver.paths.install_dir}", configure)
        self.assertEqual(configure[-1], "-DBUILD_SHELL=FALSE")
        self.assertEqual(
            commands["build"],
            [["cmake", "--build", resolver.paths.build_dir, "--config", "Release", "-j", "4"]],
        )
        self.assertEqual(commands["install"], [["cmake", "--install", resolver.paths.build_dir, "--config", "Release"]])

    def test_source_subdir(self):
        resolver = self.resolver_for(build_kind="cmake", source_subdir="dlib")
        configure = resolver.get_build_commands()["configure"][0]
        self.assertEqual(configure[2], os.path.join(resolver.paths.source_dir, "dlib"))

    def test_enabled_option_flags_follow_base_flags(self):
        options = {
            "brotli": {"enabled": True, "build_flags": ["-DEXIV2_ENABLE_BROTLI=ON"]},
            "nls": {"build_flags": ["-DEXIV2_ENABLE_NLS=ON"]},
        }
        resolver = self.resolver_for(build_kind="cmake", build_flags=["-DEXIV2_ENABLE_BROTLI=OFF"], options=options)
        configure = resolver.get_build_commands()["configure"][0]
        self.assertEqual(configure[-2:], ["-DEXIV2_ENABLE_BROTLI=OFF", "-DEXIV2_ENABLE_BROTLI=ON"])
        self.assertNotIn("-DEXIV2_ENABLE_NLS=ON", configure)

    def test_without_install_rule_copies_from_build_tree(self):
        resolver = self.resolver_for(
            build_kind="cmake",
            build_targets=["mylib"],
            install_rule=False,
            install_headers=["include/mylib.h"],
        )
        commands = resolver.get_build_commands()
        self.assertEqual(commands["install"], [])
        self.assertEqual(commands["build"][0][-2:], ["--target", "mylib"])

        resolver.prepare()
        write(os.path.join(resolver.paths.build_dir, "libmylib.a"), "lib")
        write(os.path.join(resolver.paths.source_dir, "include", "mylib.h"), "header")
        resolver.post_install()
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.lib_dir, "libmylib.a")))
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.include_dir, "mylib.h")))

    def test_missing_built_library(self):
        resolver = self.resolver_for(build_kind="cmake", install_rule=False)
        resolver.prepare()
        with self.assertRaises(BuildError) as cm:
            resolver.post_install()
        self.assertEqual(cm.exception.stage, "install")


class TestPythonConfigureResolver(ResolverTestCase):

    def test_configure_py(self):
        resolver = self.resolver_for(build_kind="python-configure", build_flags=["--minimized-build"])
        configure = resolver.get_build_commands()["configure"][0]
        self.assertEqual(configure[0], sys.executable)
        self.assertEqual(configure[1], os.path.join(resolver.paths.source_dir, "configure.py"))
        self.assertEqual(configure[2:], [f"--prefix={resolver.paths.install_dir}", "--minimized-build"])


class TestMakeDirectResolver(ResolverTestCase):

    def test_flags_passed_to_build_and_install(self):
        resolver = self.resolver_for(build_kind="make-direct", build_targets=["libs", "netlib"], build_flags=["NO_FORTRAN=1"])
        commands = resolver.get_build_commands()
        prefix = f"PREFIX={resolver.paths.install_dir}"
        self.assertEqual(commands["configure"], [])
        self.assertEqual(commands["build"], [["make", "libs", "netlib", "-j4", "NO_FORTRAN=1", prefix]])
        self.assertEqual(commands["install"], [["make", "install", "NO_FORTRAN=1", prefix]])


class TestHeaderOnlyResolver(ResolverTestCase):

    def test_no_commands(self):
        commands = self.resolver_for(build_kind="header-only").get_build_commands()
        self.assertTrue(all(not commands[stage] for stage in STAGES))

    def test_single_header_file(self):
        resolver = self.resolver_for(
            name="nlohmann-json",
            source_urls=["https://example.com/json.hpp"],
            build_kind="header-only",
            include_subdir="nlohmann",
            expected_artifacts=["include/nlohmann/json.hpp"],
            link_targets=[],
        )
        write(os.path.join(resolver.paths.source_dir, "json.hpp"), "// json")
        resolver.prepare()
        resolver.post_install()
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.include_dir, "nlohmann", "json.hpp")))

    def test_header_tree_keeps_layout(self):
        resolver = self.resolver_for(build_kind="header-only", link_targets=[])
        write(os.path.join(resolver.paths.source_dir, "SingleHeader", "Linq.hpp"))
        write(os.path.join(resolver.paths.source_dir, "detail", "impl.h"))
        resolver.prepare()
        resolver.post_install()
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.include_dir, "SingleHeader", "Linq.hpp")))
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.include_dir, "detail", "impl.h")))

    def test_no_headers_found(self):
        resolver = self.resolver_for(build_kind="header-only", link_targets=[])
        os.makedirs(resolver.paths.source_dir)
        resolver.prepare()
        with self.assertRaises(BuildError):
            resolver.post_install()


class TestManualCompileResolver(ResolverTestCase):

    def resolver_with_sources(self):
        resolver = self.resolver_for(
            build_kind="manual-compile",
            compile={
                "compiler": "c++",
                "source_subdir": "src",
                "exclude": ["^kernels_"],
                "defines": ["AE_NO_EXCEPTIONS"],
                "library": "mylib",
            },
        )
        for name in ("ap.cpp", "linalg.cpp", "kernels_avx2.cpp", "ap.h"):
            write(os.path.join(resolver.paths.source_dir, "src", name))
        return resolver

    def test_sources_exclude_patterns(self):
        resolver = self.resolver_with_sources()
        self.assertEqual(
            [os.path.basename(path) for path in resolver.sources()],
            ["ap.cpp", "linalg.cpp"],
        )

    def test_compile_then_archive(self):
        resolver = self.resolver_with_sources()
        resolver.prepare()
        build = resolver.get_build_commands()["build"]
        self.assertEqual(len(build), 4)
        compile_ap = build[0]
        self.assertIn("-DAE_NO_EXCEPTIONS", compile_ap)
        self.assertIn("-c", compile_ap)
        self.assertEqual(compile_ap[-1], os.path.join(resolver.object_dir, "ap.o"))
        self.assertEqual(build[2][1:], ["rcs", resolver.library_path, os.path.join(resolver.object_dir, "ap.o")])
        self.assertEqual(resolver.library_path, os.path.join(resolver.paths.lib_dir, "libmylib.a"))

    def test_no_sources(self):
        resolver = self.resolver_for(build_kind="manual-compile")
        os.makedirs(resolver.paths.source_dir)
        with self.assertRaises(BuildError):
            resolver.get_build_commands()

    def test_headers_installed_flat(self):
        resolver = self.resolver_with_sources()
        resolver.prepare()
        resolver.post_install()
        self.assertTrue(os.path.isfile(os.path.join(resolver.paths.include_dir, "ap.h")))


if __name__ == '__main__':
    unittest.main()
