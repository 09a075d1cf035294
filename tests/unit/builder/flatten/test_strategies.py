"""Tests for disk and pipe flatten strategies."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, call

import pytest

from shipwright.build.changes import CommitInstructions
from shipwright.build.flatten import (
    DiskFlattenStrategy,
    PipeFlattenStrategy,
    flatten_image,
)
from shipwright.core.exceptions import EngineCommandError, ShipwrightError

INSTRUCTIONS = CommitInstructions(changes=["USER app", "EXPOSE 80/tcp"], size=1024)


class TestDiskFlattenStrategy:
    """Tests for DiskFlattenStrategy."""

    @pytest.mark.asyncio
    async def test_flatten_sequence(self, mock_engine, tmp_path):
        """Test create, export to file, import, then cleanup."""
        exported = {}

        async def export(container, output=None):
            exported["path"] = Path(output)
            assert exported["path"].exists()
            return None

        mock_engine.export = AsyncMock(side_effect=export)
        strategy = DiskFlattenStrategy(mock_engine, container_name="c1", temp_dir=str(tmp_path))

        result = await strategy.flatten("temp:latest", "myorg/app", INSTRUCTIONS)

        assert result == "myorg/app"
        mock_engine.create.assert_awaited_once_with("temp:latest", name="c1")
        mock_engine.import_image.assert_awaited_once_with(
            exported["path"], "myorg/app", changes=INSTRUCTIONS.changes
        )
        mock_engine.remove_container.assert_awaited_once_with("c1", force=True)
        assert not exported["path"].exists()

    @pytest.mark.asyncio
    async def test_cleanup_on_import_failure(self, mock_engine, tmp_path):
        """Test temp file and container are released when import fails."""
        mock_engine.import_image = AsyncMock(
            side_effect=EngineCommandError(["docker", "import"], 1, "boom")
        )
        strategy = DiskFlattenStrategy(mock_engine, container_name="c1", temp_dir=str(tmp_path))

        with pytest.raises(EngineCommandError):
            await strategy.flatten("temp:latest", "myorg/app", INSTRUCTIONS)

        mock_engine.remove_container.assert_awaited_once_with("c1", force=True)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_create_failure_skips_cleanup(self, mock_engine, tmp_path):
        """Test nothing is exported or removed if the container was never created."""
        mock_engine.create = AsyncMock(
            side_effect=EngineCommandError(["docker", "create"], 1, "no such image")
        )
        strategy = DiskFlattenStrategy(mock_engine, container_name="c1", temp_dir=str(tmp_path))

        with pytest.raises(EngineCommandError):
            await strategy.flatten("temp:latest", "myorg/app", INSTRUCTIONS)

        mock_engine.export.assert_not_awaited()
        mock_engine.remove_container.assert_not_awaited()


class TestPipeFlattenStrategy:
    """Tests for PipeFlattenStrategy."""

    @pytest.mark.asyncio
    async def test_flatten_sequence(self, mock_engine):
        """Test the export stream is handed to import."""
        stream = Mock()
        mock_engine.export = AsyncMock(return_value=stream)
        strategy = PipeFlattenStrategy(mock_engine, container_name="c2")

        result = await strategy.flatten("temp:latest", "myorg/app", INSTRUCTIONS)

        assert result == "myorg/app"
        mock_engine.export.assert_awaited_once_with("c2")
        mock_engine.import_image.assert_awaited_once_with(
            "-", "myorg/app", changes=INSTRUCTIONS.changes, pipe=stream
        )
        mock_engine.remove_container.assert_awaited_once_with("c2", force=True)

    @pytest.mark.asyncio
    async def test_missing_stream_raises(self, mock_engine):
        """Test an export without a stream fails and still removes the container."""
        mock_engine.export = AsyncMock(return_value=None)
        strategy = PipeFlattenStrategy(mock_engine, container_name="c2")

        with pytest.raises(ShipwrightError):
            await strategy.flatten("temp:latest", "myorg/app", INSTRUCTIONS)

        mock_engine.import_image.assert_not_awaited()
        mock_engine.remove_container.assert_awaited_once_with("c2", force=True)


class TestFlattenImage:
    """Tests for flatten_image."""

    @pytest.mark.asyncio
    async def test_streams_when_memory_is_plentiful(self, mock_engine):
        """Test a small image is flattened via pipe."""
        mock_engine.export = AsyncMock(return_value=Mock())

        result = await flatten_image(
            mock_engine, "shipwright-temp", "myorg/app", free_memory=8_000_000_000
        )

        assert result == "myorg/app"
        mock_engine.inspect.assert_awaited_once_with("shipwright-temp:latest")
        assert mock_engine.export.await_args == call(mock_engine.create.await_args.kwargs["name"])
        assert mock_engine.import_image.await_args.kwargs["pipe"] is not None

    @pytest.mark.asyncio
    async def test_buffers_to_disk_when_memory_is_tight(self, mock_engine):
        """Test a large image is flattened via a temp file."""
        result = await flatten_image(
            mock_engine, "shipwright-temp", "myorg/app", free_memory=1_000
        )

        assert result == "myorg/app"
        assert mock_engine.export.await_args.kwargs["output"] is not None
        source = mock_engine.import_image.await_args.args[0]
        assert isinstance(source, Path)
        assert not source.exists()

    @pytest.mark.asyncio
    async def test_changes_from_inspection_applied(self, mock_engine):
        """Test the inspected configuration is passed as import changes."""
        mock_engine.export = AsyncMock(return_value=Mock())

        await flatten_image(mock_engine, "shipwright-temp", "myorg/app", free_memory=10**12)

        changes = mock_engine.import_image.await_args.kwargs["changes"]
        assert changes[0] == "USER app"
        assert 'ENV GREETING="hello world"' in changes
