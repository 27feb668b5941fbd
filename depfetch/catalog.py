"""Built-in dependency descriptors.

Entries are plain dicts so that project configuration can override any
field by name (``[dependencies.<name>]`` in ``depfetch.toml``) without
copying the whole descriptor.
"""

import copy

from .descriptor import DependencyDescriptor
from .exceptions import DescriptorError

GNU_MIRRORS = ("https://ftp.gnu.org/gnu", "https://ftpmirror.gnu.org")

SQLITE_DEFINES = [
    "SQLITE_ENABLE_FTS5",
    "SQLITE_ENABLE_MATH_FUNCTIONS",
    "SQLITE_ENABLE_STAT4",
    "SQLITE_ENABLE_COLUMN_METADATA",
    "SQLITE_DQS=0",
    "SQLITE_DEFAULT_MEMSTATUS=0",
    "SQLITE_DEFAULT_WAL_SYNCHRONOUS=1",
    "SQLITE_LIKE_DOESNT_MATCH_BLOBS",
    "SQLITE_OMIT_DEPRECATED",
    "SQLITE_MAX_EXPR_DEPTH=0",
    "SQLITE_THREADSAFE=2",
]

DLIB_MODELS_URL = "https://github.com/davisking/dlib-models/raw/master"
DLIB_MODELS_DIR = "share/dlib-models"

# pre-trained models shipped bzip2-compressed in the dlib-models repository
DLIB_MODEL_FILES = [
    "dlib_face_recognition_resnet_model_v1.dat",
    "face_recognition_densenet_model_v1.dat",
    "taguchi_face_recognition_resnet_model_v1.dat",
    "mmod_human_face_detector.dat",
    "shape_predictor_5_face_landmarks.dat",
    "shape_predictor_68_face_landmarks.dat",
    "shape_predictor_68_face_landmarks_GTX.dat",
    "mmod_rear_end_vehicle_detector.dat",
    "mmod_front_and_rear_end_vehicle_detector.dat",
    "resnet34_1000_imagenet_classifier.dnn",
    "resnet50_1000_imagenet_classifier.dnn",
    "resnet34_stable_imagenet_1k.dat",
    "vit-s-16_stable_imagenet_1k.dat",
    "mmod_dog_hipsterizer.dat",
    "dnn_gender_classifier_v1.dat",
    "dnn_age_predictor_v1.dat",
    "dcgan_162x162_synth_faces.dnn",
    "res50_self_supervised_cifar_10.dat",
    "highres_colorify.dnn",
]

CATALOG = {
    "gmp": {
        "version": "6.3.0",
        "description": "GNU Multiple Precision Arithmetic Library",
        "license": "LGPL-3.0-or-later OR GPL-2.0-or-later",
        "source_urls": [f"{mirror}/gmp/gmp-6.3.0.tar.xz" for mirror in GNU_MIRRORS],
        "build_kind": "autotools",
        "build_flags": ["--enable-cxx"],
        "expected_artifacts": ["lib/libgmp.a", "lib/libgmpxx.a"],
        "link_targets": [
            {"name": "gmpxx", "path": "lib/libgmpxx.a"},
            {"name": "gmp", "path": "lib/libgmp.a"},
        ],
    },
    "gsl": {
        "version": "2.8",
        "description": "GNU Scientific Library",
        "license": "GPL-3.0-or-later",
        "source_urls": [f"{mirror}/gsl/gsl-2.8.tar.gz" for mirror in GNU_MIRRORS],
        "build_kind": "autotools",
        "expected_artifacts": ["lib/libgsl.a", "lib/libgslcblas.a"],
        "link_targets": [
            {"name": "gsl", "path": "lib/libgsl.a"},
            {"name": "gslcblas", "path": "lib/libgslcblas.a"},
        ],
        "system_libs": ["m"],
    },
    "mpdecimal": {
        "version": "4.0.1",
        "description": "Arbitrary precision decimal floating point arithmetic",
        "license": "BSD-2-Clause",
        "source_urls": ["https://www.bytereef.org/software/mpdecimal/releases/mpdecimal-4.0.1.tar.gz"],
        "build_kind": "autotools",
        "build_flags": ["--enable-pc"],
        "expected_artifacts": ["lib/libmpdec.a", "lib/libmpdec++.a"],
        "link_targets": [
            {"name": "mpdecpp", "path": "lib/libmpdec++.a"},
            {"name": "mpdec", "path": "lib/libmpdec.a"},
        ],
        "system_libs": ["m"],
    },
    "libsodium": {
        "version": "1.0.21",
        "description": "Modern, easy-to-use cryptography library",
        "license": "ISC",
        "source_urls": [
            "https://github.com/jedisct1/libsodium/archive/refs/tags/1.0.21-RELEASE.tar.gz",
            "https://download.libsodium.org/libsodium/releases/libsodium-1.0.21.tar.gz",
        ],
        "build_kind": "autotools",
        # git tag archives carry configure.ac but no generated configure
        "source_marker": "configure.ac",
        "expected_artifacts": ["lib/libsodium.a"],
        "link_targets": [{"name": "sodium", "path": "lib/libsodium.a"}],
    },
    "botan": {
        "version": "3.10.0",
        "description": "Cryptography library (minimized build)",
        "license": "BSD-2-Clause",
        "source_urls": ["https://github.com/randombit/botan/archive/refs/tags/3.10.0.tar.gz"],
        "build_kind": "python-configure",
        "build_flags": [
            "--minimized-build",
            "--enable-modules=sha2_32,sha2_64,sha3,hmac,aes,gcm,ctr,auto_rng,system_rng,base64,hex",
            "--disable-shared-library",
        ],
        "expected_artifacts": ["lib/libbotan-3.a"],
        "link_targets": [{"name": "botan", "path": "lib/libbotan-3.a"}],
    },
    "duckdb": {
        "version": "1.4.4",
        "description": "In-process analytical SQL database (static C/C++ API)",
        "license": "MIT",
        "source_urls": ["https://github.com/duckdb/duckdb/archive/refs/tags/v1.4.4.tar.gz"],
        "build_kind": "cmake",
        "build_flags": [
            "-DBUILD_SHELL=FALSE",
            "-DBUILD_UNITTESTS=FALSE",
            "-DBUILD_BENCHMARKS=FALSE",
            "-DBUILD_COMPLETE_EXTENSION_SET=FALSE",
            "-DDISABLE_BUILTIN_EXTENSIONS=TRUE",
            "-DENABLE_EXTENSION_AUTOLOADING=FALSE",
            "-DENABLE_EXTENSION_AUTOINSTALL=FALSE",
            "-DSKIP_EXTENSIONS=parquet",
            "-DOVERRIDE_GIT_DESCRIBE=v1.4.4-0-g0000000000",
        ],
        "expected_artifacts": ["lib/libduckdb_static.a"],
        # the static library needs every bundled third-party archive after it
        "link_targets": [
            {"name": "duckdb_static", "path": "lib/libduckdb_static.a"},
            {"name": "bundled", "path": "lib/*.a"},
        ],
        "system_libs": ["pthread"],
    },
    "isocline": {
        "version": "1.0.9",
        "description": "Portable readline alternative",
        "license": "MIT",
        "source_urls": ["https://github.com/daanx/isocline/archive/refs/tags/v1.0.9.tar.gz"],
        "build_kind": "cmake",
        "build_targets": ["isocline"],
        "install_rule": False,
        "install_headers": ["include/isocline.h"],
        "expected_artifacts": ["lib/libisocline.a", "include/isocline.h"],
        "link_targets": [{"name": "isocline", "path": "lib/libisocline.a"}],
    },
    "glog": {
        "version": "0.7.1",
        "description": "Google logging library",
        "license": "BSD-3-Clause",
        "source_urls": ["https://github.com/google/glog/archive/refs/tags/v0.7.1.tar.gz"],
        "build_kind": "cmake",
        "build_flags": [
            "-DBUILD_SHARED_LIBS=OFF",
            "-DWITH_GFLAGS=OFF",
            "-DWITH_GTEST=OFF",
            "-DWITH_UNWIND=OFF",
            "-DBUILD_TESTING=OFF",
        ],
        "expected_artifacts": ["lib/libglog.a"],
        "link_targets": [{"name": "glog", "path": "lib/libglog.a"}],
        "compile_definitions": ["GLOG_USE_GLOG_EXPORT"],
        "system_libs": ["pthread"],
    },
    "gflags": {
        "version": "2.2.2",
        "description": "Commandline flags processing",
        "license": "BSD-3-Clause",
        "source_urls": ["https://github.com/gflags/gflags/archive/refs/tags/v2.2.2.tar.gz"],
        "build_kind": "cmake",
        "build_flags": [
            "-DBUILD_SHARED_LIBS=OFF",
            "-DBUILD_STATIC_LIBS=ON",
            "-DBUILD_TESTING=OFF",
            "-DBUILD_PACKAGING=OFF",
            "-DCMAKE_POLICY_VERSION_MINIMUM=3.5",
        ],
        "expected_artifacts": ["lib/libgflags.a"],
        "link_targets": [{"name": "gflags", "path": "lib/libgflags.a"}],
    },
    "openblas": {
        "version": "0.3.28",
        "description": "Optimized BLAS library (BLAS only, no Fortran)",
        "license": "BSD-3-Clause",
        "source_urls": [
            "https://github.com/OpenMathLib/OpenBLAS/releases/download/v0.3.28/OpenBLAS-0.3.28.tar.gz",
            "https://github.com/xianyi/OpenBLAS/releases/download/v0.3.28/OpenBLAS-0.3.28.tar.gz",
        ],
        "build_kind": "make-direct",
        "build_targets": ["libs", "netlib"],
        "build_flags": ["NO_FORTRAN=1", "NO_LAPACK=1", "USE_OPENMP=0", "DYNAMIC_ARCH=0", "NO_SHARED=1"],
        "expected_artifacts": ["lib/libopenblas.a"],
        "link_targets": [{"name": "openblas", "path": "lib/libopenblas.a"}],
        "system_libs": ["m", "pthread"],
    },
    "alglib": {
        "version": "4.07.0",
        "description": "Numerical analysis and data processing library",
        "license": "GPL-2.0-or-later",
        "source_urls": ["https://www.alglib.net/translator/re/alglib-4.07.0.cpp.gpl.zip"],
        "build_kind": "manual-compile",
        "source_marker": "src/ap.h",
        "compile": {
            "compiler": "c++",
            "source_subdir": "src",
            "sources": "*.cpp",
            # SIMD kernels need per-file instruction set flags
            "exclude": ["^kernels_"],
            "flags": ["-O2", "-fPIC", "-std=c++17"],
            "library": "alglib",
            "headers": ["*.h"],
        },
        "expected_artifacts": ["lib/libalglib.a"],
        "link_targets": [{"name": "alglib", "path": "lib/libalglib.a"}],
    },
    "sqlite3": {
        "version": "3.51.0",
        "description": "SQLite amalgamation built as a static library",
        "license": "Public Domain",
        "source_urls": ["https://sqlite.org/2025/sqlite-autoconf-3510000.tar.gz"],
        "build_kind": "manual-compile",
        "source_marker": "sqlite3.c",
        "compile": {
            "compiler": "cc",
            "sources": "sqlite3.c",
            "flags": ["-O2", "-fPIC"],
            "defines": list(SQLITE_DEFINES),
            "library": "sqlite3",
            "headers": ["sqlite3.h", "sqlite3ext.h"],
        },
        "compile_definitions": list(SQLITE_DEFINES),
        "expected_artifacts": ["lib/libsqlite3.a", "include/sqlite3.h"],
        "link_targets": [{"name": "sqlite3", "path": "lib/libsqlite3.a"}],
    },
    "nlohmann-json": {
        "version": "3.12.0",
        "description": "JSON for Modern C++ (single header)",
        "license": "MIT",
        "source_urls": ["https://github.com/nlohmann/json/releases/download/v3.12.0/json.hpp"],
        "build_kind": "header-only",
        "include_subdir": "nlohmann",
        "expected_artifacts": ["include/nlohmann/json.hpp"],
    },
    "linqforcpp": {
        "version": "1.0.1",
        "description": "LINQ for C++ (single header)",
        "license": "MIT",
        "source_urls": ["https://github.com/harayuu9/LinqForCpp/releases/download/v1.0.1/LinqForCpp.zip"],
        "build_kind": "header-only",
        "extracted_dir": ".",
        "source_marker": "SingleHeader/Linq.hpp",
        "install_headers": ["**/*.hpp"],
        "patches": [
            {
                "path": "SingleHeader/Linq.hpp",
                "search": "using Allocator = std::allocator<T>;\n}",
                "replace": "using Allocator = std::allocator<T>;\n// } -- removed: premature namespace close (patched)",
            }
        ],
        "expected_artifacts": ["include/SingleHeader/Linq.hpp"],
    },
    "dlib": {
        "version": "19.24.6",
        "description": "Machine learning toolkit (GUI support disabled)",
        "license": "BSL-1.0",
        "source_urls": ["https://github.com/davisking/dlib.git"],
        "git_tag": "v19.24.6",
        "build_kind": "cmake",
        # the library's own CMake project lives in the dlib/ subdirectory
        "source_subdir": "dlib",
        "source_marker": "dlib/CMakeLists.txt",
        "build_flags": [
            "-DBUILD_SHARED_LIBS=OFF",
            "-DDLIB_NO_GUI_SUPPORT=ON",
            "-DDLIB_USE_CUDA=OFF",
            "-DDLIB_USE_BLAS=OFF",
            "-DDLIB_USE_LAPACK=OFF",
            "-DDLIB_PNG_SUPPORT=OFF",
            "-DDLIB_JPEG_SUPPORT=OFF",
            "-DDLIB_GIF_SUPPORT=OFF",
            "-DDLIB_WEBP_SUPPORT=OFF",
            "-DDLIB_JXL_SUPPORT=OFF",
            "-DDLIB_LINK_WITH_SQLITE3=OFF",
        ],
        "expected_artifacts": ["lib/libdlib.a", "include/dlib/matrix.h"],
        "link_targets": [{"name": "dlib", "path": "lib/libdlib.a"}],
        "system_libs": ["pthread"],
        "options": {
            "models": {
                "enabled": False,
                "description": "Download the pre-trained models (several hundred MB)",
                "downloads": [
                    {"url": f"{DLIB_MODELS_URL}/{model}.bz2", "dest": DLIB_MODELS_DIR, "decompress": "bz2"}
                    for model in DLIB_MODEL_FILES
                ],
                "expected_artifacts": [f"{DLIB_MODELS_DIR}/{model}" for model in DLIB_MODEL_FILES],
                "compile_definitions": [f'DLIB_MODELS_PATH="{{install_dir}}/{DLIB_MODELS_DIR}"'],
            },
        },
    },
    "replxx": {
        "version": "0.0.4",
        "description": "Readline replacement with UTF-8, syntax highlighting and hints",
        "license": "BSD-3-Clause",
        "source_urls": ["https://github.com/AmokHuginnsson/replxx.git"],
        "git_tag": "release-0.0.4",
        "build_kind": "cmake",
        "build_flags": [
            "-DBUILD_SHARED_LIBS=OFF",
            "-DREPLXX_BUILD_EXAMPLES=OFF",
            "-DREPLXX_BUILD_PACKAGE=OFF",
        ],
        "expected_artifacts": ["lib/libreplxx.a", "include/replxx.hxx"],
        "link_targets": [{"name": "replxx", "path": "lib/libreplxx.a"}],
        "system_libs": ["pthread"],
    },
    "exiv2": {
        "version": "0.28.7",
        "description": "Exif, IPTC, XMP and ICC image metadata library",
        "license": "GPL-2.0-or-later",
        "source_urls": ["https://github.com/Exiv2/exiv2.git"],
        "git_tag": "v0.28.7",
        "build_kind": "cmake",
        "build_flags": [
            "-DBUILD_SHARED_LIBS=ON",
            "-DEXIV2_ENABLE_XMP=ON",
            "-DEXIV2_ENABLE_NLS=OFF",
            "-DEXIV2_ENABLE_INIH=OFF",
            "-DEXIV2_ENABLE_BROTLI=OFF",
            "-DEXIV2_BUILD_SAMPLES=OFF",
            "-DEXIV2_BUILD_EXIV2_COMMAND=OFF",
            "-DEXIV2_BUILD_UNIT_TESTS=OFF",
        ],
        "expected_artifacts": ["lib/libexiv2.so", "include/exiv2/exiv2.hpp"],
        "link_targets": [{"name": "exiv2", "path": "lib/libexiv2.so", "kind": "shared"}],
        "system_libs": ["z", "expat"],
        "options": {
            "brotli": {
                "enabled": False,
                "description": "Decode Brotli-compressed JPEG XL boxes (needs libbrotli)",
                "build_flags": ["-DEXIV2_ENABLE_BROTLI=ON"],
                "system_libs": ["brotlidec", "brotlicommon"],
            },
        },
    },
}

# override keys that extend a catalog list instead of replacing it
APPEND_KEYS = {
    "extra_build_flags": "build_flags",
    "extra_source_urls": "source_urls",
    "extra_system_libs": "system_libs",
    "extra_compile_definitions": "compile_definitions",
}


def names():
    return sorted(CATALOG)


def _merge_options(name, options, settings):
    """``models = true`` toggles a defined option; a table adds or amends one."""
    for option_name, setting in settings.items():
        if isinstance(setting, bool):
            if option_name not in options:
                available = ", ".join(sorted(options)) or "none"
                raise DescriptorError(f"{name}: unknown option '{option_name}' (available: {available})")
            options[option_name] = {**options[option_name], "enabled": setting}
        elif isinstance(setting, dict):
            options[option_name] = {**options.get(option_name, {}), **setting}
        else:
            raise DescriptorError(f"{name}: option '{option_name}' must be true, false or a table")


def merge_overrides(base, overrides, name=""):
    """Apply a named override table to a catalog entry (returns a new dict)."""
    data = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if key in APPEND_KEYS:
            target = APPEND_KEYS[key]
            data[target] = list(data.get(target, [])) + list(value)
        elif key == "compile" and isinstance(value, dict):
            data["compile"] = {**data.get("compile", {}), **value}
        elif key == "options" and isinstance(value, dict):
            _merge_options(name, data.setdefault("options", {}), copy.deepcopy(value))
        else:
            data[key] = copy.deepcopy(value)
    return data


def get_descriptor(name, overrides=None):
    """
    Returns the descriptor for ``name``.

    Catalog entries are merged with ``overrides``; an unknown name is
    accepted only when ``overrides`` is itself a complete descriptor.

    Raises:
        DescriptorError: if the name is unknown and no full descriptor is given.
    """
    if name in CATALOG:
        data = merge_overrides(CATALOG[name], overrides, name)
    elif overrides:
        data = merge_overrides({}, overrides, name)
    else:
        raise DescriptorError(
            f"Unknown dependency '{name}'. Built-in dependencies: {', '.join(names())}"
        )
    return DependencyDescriptor.from_dict(name, data)
