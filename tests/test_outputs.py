"""Tests for outputs.py module."""

from container_build.outputs import FileOutputs, MemoryOutputs


class TestMemoryOutputs:
    def test_set_output(self):
        outputs = MemoryOutputs()
        outputs.set_output("imageid", "sha256:1")
        assert outputs.values == {"imageid": "sha256:1"}


class TestFileOutputs:
    """Tests for FileOutputs."""

    def test_single_line(self, tmp_path):
        path = tmp_path / "outputs"
        outputs = FileOutputs(path)

        outputs.set_output("imageid", "sha256:1")
        outputs.set_output("digest", "sha256:2")

        assert path.read_text() == "imageid=sha256:1\ndigest=sha256:2\n"
        assert outputs.values == {"imageid": "sha256:1", "digest": "sha256:2"}

    def test_multi_line_uses_delimiter(self, tmp_path):
        path = tmp_path / "outputs"
        value = '{\n  "containerimage.digest": "sha256:2"\n}'

        FileOutputs(path).set_output("metadata", value)

        lines = path.read_text().splitlines()
        assert lines[0].startswith("metadata<<ghadelimiter_")
        delimiter = lines[0].split("<<", 1)[1]
        assert lines[-1] == delimiter
        assert "\n".join(lines[1:-1]) == value

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "ci" / "outputs"
        FileOutputs(path).set_output("imageid", "sha256:1")
        assert path.exists()
