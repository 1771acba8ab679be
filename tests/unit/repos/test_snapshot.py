"""Tests for package artifacts and repository snapshots."""

from pathlib import Path

from s3rpm.repos.base import RPM_MAGIC, PackageArtifact, RepositorySnapshot, SignatureState


class TestPackageArtifact:
    """Tests for PackageArtifact."""

    def test_filename_is_basename(self):
        artifact = PackageArtifact(Path("/srv/build/out/foo-1.0-1.x86_64.rpm"))

        assert artifact.filename == "foo-1.0-1.x86_64.rpm"
        assert artifact.signature == SignatureState.UNSIGNED

    def test_looks_like_rpm_by_magic(self, tmp_path):
        """Test RPM magic is recognized regardless of extension."""
        path = tmp_path / "package.bin"
        path.write_bytes(RPM_MAGIC + b"payload")

        assert PackageArtifact(path).looks_like_rpm()

    def test_looks_like_rpm_by_extension(self, tmp_path):
        path = tmp_path / "package.rpm"
        path.write_bytes(b"not really")

        assert PackageArtifact(path).looks_like_rpm()

    def test_not_an_rpm(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        assert not PackageArtifact(path).looks_like_rpm()


class TestRepositorySnapshot:
    """Tests for RepositorySnapshot file listings."""

    def test_listings(self, tmp_path):
        (tmp_path / "b.rpm").write_bytes(b"b")
        (tmp_path / "a.rpm").write_bytes(b"a")
        (tmp_path / "README").write_text("x")
        (tmp_path / "repodata").mkdir()
        (tmp_path / "repodata" / "repomd.xml").write_text("<repomd/>")

        snapshot = RepositorySnapshot(tmp_path)

        assert [p.name for p in snapshot.package_files()] == ["a.rpm", "b.rpm"]
        assert {p.relative_to(tmp_path).as_posix() for p in snapshot.files()} == {
            "a.rpm",
            "b.rpm",
            "README",
            "repodata/repomd.xml",
        }
        assert snapshot.catalog.exists()

    def test_missing_directory(self, tmp_path):
        snapshot = RepositorySnapshot(tmp_path / "missing")

        assert snapshot.package_files() == []
        assert snapshot.files() == []
