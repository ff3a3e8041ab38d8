from engine.history import HistoryStack


def test_push_undo_redo():
    h = HistoryStack("a")
    h.push("b")
    h.push("c")
    assert h.current == "c" and len(h) == 3
    assert h.undo() == "b"
    assert h.undo() == "a"
    assert not h.can_undo
    assert h.undo() == "a"
    assert h.redo() == "b"
    assert h.can_redo


def test_push_truncates_redo_branch():
    h = HistoryStack("a")
    h.push("b")
    h.push("c")
    h.undo()
    h.undo()
    h.push("x")
    assert not h.can_redo
    assert len(h) == 2
    assert h.undo() == "a"
    assert h.redo() == "x"


def test_replace_current_and_reset():
    h = HistoryStack(1)
    h.push(2)
    h.replace_current(3)
    assert h.current == 3 and len(h) == 2
    h.reset(10)
    assert h.current == 10 and len(h) == 1 and h.index == 0
