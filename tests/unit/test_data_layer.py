import numpy as np
import pytest

from hasvocals.core.errors import DataUnavailable, MalformedInput
from hasvocals.core.types import FeatureFrame
from hasvocals.data.containers import DataContainer, InMemoryContainer, LabeledFrameContainer
from hasvocals.data.discovery import select_files, walk_files
from hasvocals.data.labeled_io import from_line, read_frames, to_line, write_frames
from hasvocals.data.manifest import parse_label_manifest
from hasvocals.data.utils import partition, split_containers


def test_line_format():
    frame = FeatureFrame([0.5, 1.5], [1.0])
    assert to_line(frame) == "0\t2\t0\t1.0,\t0.5,1.5,\t"
    assert from_line(to_line(frame)) == frame


def test_written_frames_read_back_exactly(tmp_path):
    rng = np.random.default_rng(7)
    frames = [
        FeatureFrame(rng.normal(size=6), [1.0], base_feature_length=2, highest_derivative=2),
        FeatureFrame(rng.normal(size=2) * 1e-17, [0.0], is_pad=True),
    ]
    path = tmp_path / "out.mfc"
    assert write_frames(frames, path) == 2
    assert write_frames(frames[:1], path, append=True) == 1
    loaded = read_frames(path)
    assert loaded == frames + frames[:1]


@pytest.mark.parametrize(
    "line",
    ["abc", "0\t2\t0\t1.0,\t", "0\t2\t0\t1.0,\t0.5,x,\t", "0\t2\t5\t1.0,\t0.5,1.5,\t", "0\t3\t0\t1.0,\t0.5,1.5,\t"],
)
def test_malformed_lines(line):
    with pytest.raises(MalformedInput):
        from_line(line)


def test_labeled_container_skips_pads(tmp_path):
    path = tmp_path / "song.mfc"
    write_frames(
        [
            FeatureFrame([1.0], [1.0]),
            FeatureFrame([2.0], [1.0], is_pad=True),
            FeatureFrame([3.0], [1.0]),
        ],
        path,
    )
    container = LabeledFrameContainer(path)
    assert isinstance(container, DataContainer)
    with container:
        values = [frame.features[0] for frame in container]
    assert values == [1.0, 3.0]
    # re-opening rewinds
    container.open()
    assert container.next().features[0] == 1.0
    container.close()
    with pytest.raises(DataUnavailable):
        container.has_next()


def test_truncated_file_serves_good_frames_then_reports_unavailable(tmp_path):
    path = tmp_path / "partial.mfc"
    write_frames([FeatureFrame([0.5, 1.5], [1.0]), FeatureFrame([2.5, 3.5], [1.0])], path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write("0\t2\t0\t0.0,\t0.5")

    container = LabeledFrameContainer(path)
    container.open()
    assert container.next().features[0] == 0.5
    assert container.next().features[0] == 2.5
    with pytest.raises(DataUnavailable, match="line 3") as info:
        container.has_next()
    assert isinstance(info.value.__cause__, MalformedInput)
    container.close()


def test_missing_file_is_unavailable(tmp_path):
    with pytest.raises(DataUnavailable):
        LabeledFrameContainer(tmp_path / "missing.mfc").open()


def test_in_memory_container():
    container = InMemoryContainer([FeatureFrame([1.0], [0.0]), FeatureFrame([2.0], [0.0])])
    container.open()
    assert len(list(container)) == 2
    with pytest.raises(DataUnavailable):
        container.next()


def test_manifest_headers_and_labels(tmp_path):
    csv_path = tmp_path / "labels.csv"
    csv_path.write_text(
        "HITId,Input.filename,Answer.label\n"
        '1,"song_a.wav",has-vocals\n'
        "2,song_b,no-vocals\n"
        "3,song_c,unsure\n"
        '4,"dir/song_d.wav","maybe has-vocals"\n'
    )
    labels = parse_label_manifest(csv_path)
    assert labels == {"song_a": 1.0, "song_b": 0.0, "song_d": 1.0}


def test_manifest_rejects_bad_inputs(tmp_path):
    txt = tmp_path / "labels.txt"
    txt.write_text("Input.filename,Answer.label\n")
    with pytest.raises(MalformedInput):
        parse_label_manifest(txt)
    bad = tmp_path / "bad.csv"
    bad.write_text("name,label\nsong,has-vocals\n")
    with pytest.raises(MalformedInput):
        parse_label_manifest(bad)


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def test_file_discovery(tmp_path):
    _touch(tmp_path / "a.wav")
    _touch(tmp_path / "b.WAV")
    _touch(tmp_path / "c.txt")
    _touch(tmp_path / "sub" / "d.wav")
    assert [p.name for p in walk_files(tmp_path, ["wav"])] == ["a.wav", "b.WAV"]
    assert len(walk_files(tmp_path, ["wav"], recurse=True)) == 3
    assert [p.name for p in walk_files(tmp_path, ["wav"], recurse=True, labels={"d": 1.0})] == ["d.wav"]

    chosen = select_files(tmp_path, ["wav"], recurse=True, limit=2, rng=np.random.default_rng(0))
    assert len(chosen) == 2
    assert len(set(chosen)) == 2


def test_split_and_partition():
    train, test = split_containers(list(range(8)))
    assert train == [0, 1, 2, 3, 4, 5]
    assert test == [6, 7]
    assert partition(list(range(7)), 3) == [[0, 1], [2, 3], [4, 5, 6]]
    assert partition([1], 1) == [[1]]
    with pytest.raises(ValueError):
        split_containers([1, 2], train_fraction=0.0)
