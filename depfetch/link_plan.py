import glob
import json
import os
import re
from dataclasses import dataclass, field

from .descriptor import LinkTarget
from .exceptions import DescriptorError


@dataclass
class LinkPlan:
    """What a consuming project must reference to use one resolved dependency."""

    dependency: str
    version: str
    install_dir: str
    include_dirs: list = field(default_factory=list)
    link_targets: list = field(default_factory=list)
    system_libs: list = field(default_factory=list)
    compile_definitions: list = field(default_factory=list)

    @property
    def link_order(self):
        """``(before, after)`` pairs the static linker requires."""
        names = [target.path for target in self.link_targets]
        return list(zip(names, names[1:]))

    @property
    def libraries(self):
        return [target.path for target in self.link_targets]

    def to_dict(self):
        return {
            "dependency": self.dependency,
            "version": self.version,
            "install_dir": self.install_dir,
            "include_dirs": list(self.include_dirs),
            "link_targets": [
                {"name": target.name, "path": target.path, "kind": target.kind}
                for target in self.link_targets
            ],
            "system_libs": list(self.system_libs),
            "compile_definitions": list(self.compile_definitions),
        }


def _expand_targets(descriptor, paths):
    """Resolve link target paths; a glob expands in place, sorted, to every match."""
    targets = []
    seen = set()
    for target in descriptor.link_targets:
        resolved = paths.resolve(target.path)
        if glob.has_magic(resolved):
            matches = sorted(glob.glob(resolved))
            expanded = [
                LinkTarget(name=f"{target.name}_{os.path.basename(match).split('.')[0]}", path=match, kind=target.kind)
                for match in matches
            ]
        else:
            expanded = [LinkTarget(name=target.name, path=resolved, kind=target.kind)]
        for item in expanded:
            if item.path not in seen:
                seen.add(item.path)
                targets.append(item)
    return targets


def build_link_plan(descriptor, paths):
    """Plan for an installed dependency; ``{install_dir}`` in definitions is expanded."""
    targets = _expand_targets(descriptor, paths)
    return LinkPlan(
        dependency=descriptor.name,
        version=descriptor.version,
        install_dir=paths.install_dir,
        include_dirs=[paths.include_dir],
        link_targets=targets,
        system_libs=descriptor.effective_system_libs,
        compile_definitions=[
            definition.replace("{install_dir}", paths.install_dir)
            for definition in descriptor.effective_compile_definitions
        ],
    )


def merge_plans(plans, key=None):
    """
    Orders the libraries of several plans into one link line.

    Libraries start in plan order (or sorted by ``key`` when given); the
    ``(before, after)`` constraints of every plan are then enforced with a
    stable topological sort, so no reordering can put a base library ahead
    of the library that depends on it.

    Raises:
        DescriptorError: if the constraints are contradictory.
    """
    libraries = []
    constraints = []
    for plan in plans:
        for library in plan.libraries:
            if library not in libraries:
                libraries.append(library)
        constraints.extend(plan.link_order)
    if key is not None:
        libraries.sort(key=key)

    position = {library: index for index, library in enumerate(libraries)}
    successors = {library: set() for library in libraries}
    indegree = {library: 0 for library in libraries}
    for before, after in constraints:
        if after not in successors[before]:
            successors[before].add(after)
            indegree[after] += 1

    ordered = []
    ready = sorted((lib for lib in libraries if indegree[lib] == 0), key=position.get)
    while ready:
        current = ready.pop(0)
        ordered.append(current)
        for nxt in successors[current]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                ready.append(nxt)
        ready.sort(key=position.get)

    if len(ordered) != len(libraries):
        stuck = [lib for lib in libraries if lib not in ordered]
        raise DescriptorError(f"Contradictory link order constraints involving: {', '.join(stuck)}")
    return ordered


def _unique(items):
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _target_name(dependency, name):
    return re.sub(r"[^A-Za-z0-9_]", "_", f"{dependency}_{name}")


def render_cmake(plans, project_var="${PROJECT_NAME}"):
    """Render a CMake include file that imports and links every plan."""
    lines = [
        "# Generated by depfetch. Do not edit; re-run `depfetch ensure` instead.",
        "include_guard(GLOBAL)",
        "",
    ]
    imported = {}
    for plan in plans:
        lines.append(f"# {plan.dependency} {plan.version}")
        for target in plan.link_targets:
            target_name = _target_name(plan.dependency, target.name)
            imported[target.path] = target_name
            library_type = "SHARED" if target.kind == "shared" else "STATIC"
            lines += [
                f"if(NOT TARGET {target_name})",
                f"    add_library({target_name} {library_type} IMPORTED)",
                f"    set_target_properties({target_name} PROPERTIES",
                f"        IMPORTED_LOCATION \"{target.path}\"",
                "    )",
                "endif()",
            ]
        if plan.include_dirs:
            dirs = " ".join(f"\"{d}\"" for d in plan.include_dirs)
            lines.append(f"target_include_directories({project_var} PRIVATE {dirs})")
        if plan.compile_definitions:
            lines.append(f"target_compile_definitions({project_var} PRIVATE {' '.join(plan.compile_definitions)})")
        lines.append("")

    order = [imported[path] for path in merge_plans(plans)]
    system_libs = _unique(lib for plan in plans for lib in plan.system_libs)
    if order or system_libs:
        lines.append(f"target_link_libraries({project_var} PRIVATE {' '.join(order + system_libs)})")
    return "\n".join(lines).rstrip() + "\n"


def render_json(plans):
    return json.dumps(
        {
            "dependencies": [plan.to_dict() for plan in plans],
            "link_order": merge_plans(plans),
        },
        indent=4,
    )


def write_link_file(path, text):
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w") as f:
        f.write(text)
    os.replace(tmp, path)
    return path
