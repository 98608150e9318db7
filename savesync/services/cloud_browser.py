"""
Read-only views over bucket listings: per-game aggregates, file rows and a
nested directory tree.
"""
from typing import Dict, Iterable, List

from ..models import CloudDataItem, CloudFileDetail, ObjectInfo
from ..utils.datetime_utils import from_epoch_ms


def _group_path(key):
    """``games/<title>`` for game keys, otherwise the first path segment."""
    parts = key.split('/')
    if parts[0] == 'games' and len(parts) > 2:
        return f"games/{parts[1]}"
    return parts[0]


def list_cloud_data(objects: Iterable[ObjectInfo]) -> List[CloudDataItem]:
    """Aggregate objects into one item per game (or top-level folder).

    Returns:
        List of CloudDataItem sorted by name
    """
    groups: Dict[str, CloudDataItem] = {}
    latest: Dict[str, int] = {}

    for obj in objects:
        if not obj.key or obj.key.endswith('/'):
            continue
        path = _group_path(obj.key)
        item = groups.get(path)
        if item is None:
            item = CloudDataItem(name=path.rsplit('/', 1)[-1], remote_path=path)
            groups[path] = item
            latest[path] = 0
        item.total_size += obj.size
        item.file_count += 1
        if obj.last_modified > latest[path]:
            latest[path] = obj.last_modified

    for path, item in groups.items():
        item.last_modified = from_epoch_ms(latest[path])

    return sorted(groups.values(), key=lambda item: item.name)


def get_file_details(objects: Iterable[ObjectInfo], prefix) -> List[CloudFileDetail]:
    """Describe each object relative to *prefix*, skipping directory markers."""
    details = []
    for obj in objects:
        if obj.key.endswith('/'):
            continue
        relative = obj.key[len(prefix):] if obj.key.startswith(prefix) else obj.key
        relative = relative.lstrip('/')
        details.append(CloudFileDetail(
            name=obj.key.rsplit('/', 1)[-1],
            size=obj.size,
            last_modified=from_epoch_ms(obj.last_modified),
            key=obj.key,
            relative_path=relative,
        ))
    return details


def _new_node(name, path, is_dir):
    node = {"name": name, "path": path, "isDirectory": is_dir, "size": 0}
    if is_dir:
        node["children"] = {}
    return node


def _finalize(node):
    """Turn child maps into lists sorted directories first, then by name."""
    if not node["isDirectory"]:
        return node
    children = [_finalize(child) for child in node["children"].values()]
    children.sort(key=lambda child: (not child["isDirectory"], child["name"]))
    node["children"] = children
    node["size"] = sum(child["size"] for child in children)
    return node


def build_directory_tree(objects: Iterable[ObjectInfo]) -> dict:
    """Build a nested directory tree from a flat listing.

    Every node is a dict with ``name``, ``path``, ``isDirectory`` and
    ``size``; directories carry a sorted ``children`` list and the
    summed size of their contents.

    Example:
        >>> tree = build_directory_tree([ObjectInfo("games/a/x.sav", 3)])
        >>> tree["children"][0]["children"][0]["name"]
        'a'
    """
    root = _new_node("", "", True)

    for obj in objects:
        parts = [p for p in obj.key.split('/') if p]
        if not parts:
            continue
        is_marker = obj.key.endswith('/')
        node = root
        for depth, part in enumerate(parts):
            is_leaf = depth == len(parts) - 1 and not is_marker
            child = node["children"].get(part)
            if child is None:
                child = _new_node(part, '/'.join(parts[:depth + 1]), not is_leaf)
                node["children"][part] = child
            elif not is_leaf and not child["isDirectory"]:
                child.update(isDirectory=True, children={})
            if is_leaf:
                child["size"] = obj.size
            node = child

    return _finalize(root)
