import json
import logging

from tris3d.game import BoardSize, GameConfig, JsonFileStore, MemoryStore, Progress, Tris3DGame


KEY = "3dtris-progress"


def test_progress_payload_round_trip():
    payload = Progress.to_payload(3, 1200, 11, BoardSize(8, 8, 20))
    assert payload == {
        "level": 3,
        "score": 1200,
        "linesCleared": 11,
        "boardSize": {"width": 8, "depth": 8, "height": 20},
    }
    progress = Progress.from_payload(payload)
    assert (progress.level, progress.score, progress.lines_cleared, progress.board_width) == (3, 1200, 11, 8)


def test_partial_or_malformed_payload_falls_back_to_defaults():
    progress = Progress.from_payload({"score": 300, "level": "high", "boardSize": "big"})
    assert progress.score == 300
    assert progress.level == 1
    assert progress.lines_cleared == 0
    assert progress.board_width is None
    assert Progress.from_payload(None) == Progress()
    assert Progress.from_payload([1, 2]) == Progress()


def test_memory_store_corrupt_entry_logs_warning(caplog):
    store = MemoryStore()
    store.data[KEY] = "{not json"
    with caplog.at_level(logging.WARNING):
        assert store.load(KEY) is None
    assert "Failed to restore progress" in caplog.text


def test_json_file_store(tmp_path):
    path = tmp_path / "saves" / "progress.json"
    store = JsonFileStore(path)
    assert store.load(KEY) is None
    store.save(KEY, {"score": 5})
    store.save("other", {"score": 7})
    assert store.load(KEY) == {"score": 5}
    assert json.loads(path.read_text())["other"] == {"score": 7}


def test_json_file_store_corrupt_file(tmp_path, caplog):
    path = tmp_path / "progress.json"
    path.write_text("][")
    store = JsonFileStore(path)
    with caplog.at_level(logging.WARNING):
        assert store.load(KEY) is None
    assert "Failed to restore progress" in caplog.text
    store.save(KEY, {"score": 1})
    assert store.load(KEY) == {"score": 1}


def test_game_restores_saved_progress():
    store = MemoryStore()
    store.save(KEY, {"level": 3, "score": 1200, "linesCleared": 11, "boardSize": {"width": 8}})
    game = Tris3DGame(GameConfig(random_seed=1), store=store)
    assert game.level == 3
    assert game.score == 1200
    assert game.lines_cleared == 11
    assert game.board_size == BoardSize(8, 8, 20)
    assert game.grid.cells.shape == (20, 8, 8)


def test_game_persists_after_every_broadcast():
    store = MemoryStore()
    game = Tris3DGame(GameConfig(random_seed=1), store=store)
    assert store.load(KEY) is None
    game.start()
    assert store.load(KEY) == game.progress()
    game.update_board_size(7)
    assert store.load(KEY)["boardSize"]["width"] == 7


def test_unusable_storage_is_not_fatal(tmp_path, caplog):
    # a directory cannot be read or written as a file
    store = JsonFileStore(tmp_path)
    with caplog.at_level(logging.WARNING):
        game = Tris3DGame(GameConfig(random_seed=1), store=store)
        game.start()
    assert game.score == 0
    assert "Failed to persist progress" in caplog.text


def test_non_finite_numbers_fall_back_to_defaults():
    progress = Progress.from_payload({
        "level": float("inf"),
        "score": float("nan"),
        "linesCleared": float("-inf"),
        "boardSize": {"width": float("nan")},
    })
    assert progress == Progress()
