"""
Tests for the read-only bucket views.
"""
from savesync.models import ObjectInfo
from savesync.services.cloud_browser import build_directory_tree, get_file_details, list_cloud_data

OBJECTS = [
    ObjectInfo("games/Beta/save_data/slot1.dat", 10, 2000),
    ObjectInfo("games/Alpha/save_data/slot1.dat", 5, 1000),
    ObjectInfo("games/Alpha/memo/Notes_1.md", 3, 3000),
    ObjectInfo("games/Alpha/save_data/", 0, 500),
    ObjectInfo("images/cover.png", 7, 4000),
]


def test_list_cloud_data_groups_by_game():
    items = list_cloud_data(OBJECTS)

    assert [item.name for item in items] == ["Alpha", "Beta", "images"]
    alpha = items[0]
    assert alpha.remote_path == "games/Alpha"
    assert (alpha.total_size, alpha.file_count) == (8, 2)
    assert alpha.to_dict()["lastModified"] == "1970-01-01T00:00:03Z"


def test_get_file_details_relative_to_prefix():
    details = get_file_details(OBJECTS, "games/Alpha/")
    by_key = {d.key: d for d in details}

    assert "games/Alpha/save_data/" not in by_key
    slot = by_key["games/Alpha/save_data/slot1.dat"]
    assert slot.relative_path == "save_data/slot1.dat"
    assert slot.name == "slot1.dat"
    assert slot.size == 5


def test_build_directory_tree_is_nested_and_sorted():
    tree = build_directory_tree(OBJECTS)

    assert [c["name"] for c in tree["children"]] == ["games", "images"]
    games = tree["children"][0]
    assert [c["name"] for c in games["children"]] == ["Alpha", "Beta"]
    alpha = games["children"][0]
    assert [c["name"] for c in alpha["children"]] == ["memo", "save_data"]
    assert alpha["size"] == 8
    assert tree["size"] == 25
    cover = tree["children"][1]["children"][0]
    assert cover == {"name": "cover.png", "path": "images/cover.png", "isDirectory": False, "size": 7}
