from .system import shell
from .files import list_dir, read_file, write_file

TOOL_REGISTRY = {
    "write_file": write_file,
    "read_file": read_file,
    "list_dir": list_dir,
    "shell": shell,
}


def build_registry(allow_shell: bool = True):
    if allow_shell:
        return dict(TOOL_REGISTRY)
    return {name: fn for name, fn in TOOL_REGISTRY.items() if name != "shell"}
