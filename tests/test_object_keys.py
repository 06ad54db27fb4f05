import importlib
import re
import sys

import pytest


def _load_module():
    if "lambda" not in sys.path:
        sys.path.insert(0, "lambda")
    import object_keys as module

    return importlib.reload(module)


UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"


def test_known_content_types_map_to_canonical_extensions():
    m = _load_module()
    assert m.extension_for("image/jpeg") == "jpg"
    assert m.extension_for("image/jpg") == "jpg"
    assert m.extension_for("image/png") == "png"
    assert m.extension_for("image/webp") == "webp"
    assert m.extension_for("image/gif") == "gif"


def test_content_type_lookup_ignores_case_and_parameters():
    m = _load_module()
    assert m.extension_for("IMAGE/PNG") == "png"
    assert m.extension_for("image/webp; charset=binary") == "webp"


@pytest.mark.parametrize("content_type", ["application/pdf", "video/mp4", "", None, "not a mime"])
def test_unknown_content_types_fall_back_to_jpg(content_type):
    m = _load_module()
    assert m.extension_for(content_type) == "jpg"


def test_derived_key_is_rooted_under_identity():
    m = _load_module()
    key = m.derive_object_key("u1", "p1", "image/png")
    assert re.fullmatch(rf"u1/p1/{UUID_RE}\.png", key)
    assert key.split("/", 1)[0] == "u1"


def test_repeated_derivations_never_reuse_the_unique_id():
    m = _load_module()
    keys = {m.derive_object_key("u1", "p1", "image/jpeg") for _ in range(200)}
    assert len(keys) == 200


def test_missing_resource_id_is_invalid_request():
    m = _load_module()
    from gateway_errors import InvalidRequest

    with pytest.raises(InvalidRequest) as exc_info:
        m.derive_object_key("u1", "", "image/png")
    assert "postId is required" in exc_info.value.message
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("resource_id", ["..", "p1/../p2", "./p1", "p1//p2", "p1/"])
def test_resource_id_with_unsafe_segments_is_invalid(resource_id):
    m = _load_module()
    from gateway_errors import InvalidRequest

    with pytest.raises(InvalidRequest):
        m.derive_object_key("u1", resource_id, "image/png")


def test_nested_resource_id_stays_under_identity():
    m = _load_module()
    key = m.derive_object_key("u1", "album/p1", "image/gif")
    assert re.fullmatch(rf"u1/album/p1/{UUID_RE}\.gif", key)
