import json

import pytest
from forge_chat_client.json_tree import (
    TRUNCATION_MARKER,
    JsonNode,
    render,
    render_html,
)

RESPONSE = {
    "metadata": {"status": "succeeded", "owner": {"id": 7}},
    "data": {"x": 1},
    "steps": ["plan", {"tool": "search"}],
    "done": True,
}


@pytest.mark.parametrize(
    "value", ["hello", 'say "hi"', "naïve", 0, -3, 2.5, True, False, None]
)
def test_scalar_renders_json_literal(value):
    for expanded in (False, True):
        node = render(value, expanded=expanded)
        assert node.text == json.dumps(value, ensure_ascii=False)
        assert node.children == []
        assert not node.expanded


def test_composite_labels():
    assert render({}).text == "Object"
    assert render([]).text == "Array"


def test_expanding_reveals_only_immediate_children():
    root = render(RESPONSE)
    assert root.children == []

    root.toggle()

    assert [child.label for child in root.children] == ["metadata", "data", "steps", "done"]
    assert all(not child.expanded for child in root.children)
    assert all(child.children == [] for child in root.children)


def test_array_children_are_indexed():
    root = render(["a", ["b"]], expanded=True)

    assert [child.label for child in root.children] == [0, 1]
    assert root.children[0].text == '"a"'
    assert root.children[1].text == "Array"


def test_initial_expansion_only_applies_to_root():
    root = render(RESPONSE, expanded=True)

    assert root.expanded
    assert not root.find(["metadata"]).expanded


def test_toggle_does_not_touch_other_nodes():
    root = render(RESPONSE, expanded=True)
    metadata = root.find(["metadata"])
    steps = root.find(["steps"])
    metadata.expand()
    steps.expand()
    metadata.find(["owner"]).expand()

    steps.toggle()

    assert not steps.expanded
    assert root.expanded
    assert metadata.expanded
    assert metadata.find(["owner"]).expanded
    assert not root.find(["data"]).expanded


def test_reexpanding_starts_children_collapsed():
    root = render(RESPONSE, expanded=True)
    root.find(["metadata"]).expand()

    root.toggle()
    root.toggle()

    assert not root.find(["metadata"]).expanded


def test_empty_composites_have_no_children():
    for value in ({}, []):
        node = render(value, expanded=True)
        assert node.expanded
        assert node.children == []


def test_scalar_toggle_is_a_noop():
    node = render(3)
    assert node.toggle() is False


def test_render_does_not_mutate_value():
    value = json.loads(json.dumps(RESPONSE))
    root = render(value, expanded=True)
    for child in root.children:
        child.expand()

    assert value == RESPONSE


def test_find_unknown_label():
    root = render(RESPONSE, expanded=True)
    with pytest.raises(KeyError):
        root.find(["missing"])
    with pytest.raises(KeyError):
        # collapsed nodes have no visible children
        root.find(["metadata", "status"])


def test_lines():
    root = render(RESPONSE, expanded=True)
    root.find(["data"]).expand()

    assert root.lines() == [
        "▾ Object",
        "  metadata: ▸ Object",
        "  data: ▾ Object",
        "    x: 1",
        "  steps: ▸ Array",
        "  done: true",
    ]


def test_max_depth_truncates_instead_of_expanding():
    root = render({"a": {"b": {"c": 1}}}, expanded=True, max_depth=2)
    a = root.find(["a"])
    a.expand()
    b = a.find(["b"])
    b.expand()

    assert b.truncated
    assert b.children == []
    assert b.display() == f"b: ▾ Object {TRUNCATION_MARKER}"


def test_deep_nesting_has_no_recursion_limit():
    value = []
    for _ in range(5000):
        value = [value]

    html = render_html(value, max_depth=None)

    assert html.count("<details") == 5001

    root = render(value)
    node = root
    for _ in range(5000):
        node.expand()
        node = node.children[0]
    assert len(root.lines()) == 5001


def test_render_html_structure():
    html = render_html({"a": [1, "<b>"], "c": None}, expanded=True)

    assert html.startswith('<details class="json-node" open><summary>Object</summary>')
    assert '<span class="json-key">a: </span>Array' in html
    assert html.count(" open>") == 1
    assert "&quot;&lt;b&gt;&quot;" in html
    assert '<span class="json-scalar">null</span>' in html
    assert html.index("a: ") < html.index("c: ")


def test_render_html_scalar_and_truncation():
    assert render_html("x") == '<div class="json-leaf"><span class="json-scalar">&quot;x&quot;</span></div>'

    html = render_html({"a": {"b": {}}}, max_depth=1)
    assert TRUNCATION_MARKER in html
    assert html.count("<details") == 1


def test_node_repr():
    assert repr(JsonNode([1], label="k")) == "JsonNode(label='k', text='Array', expanded=False)"
