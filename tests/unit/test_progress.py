from __future__ import annotations

from unittest.mock import Mock, patch

from client_import.models.import_result import PipelineSnapshot, PipelineState
from client_import.services.progress import ImportProgressBar, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True
    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestImportProgressBar:
    def test_bar_created_lazily_on_tty(self):
        with patch('client_import.services.progress.is_tty_enabled', return_value=True), \
             patch('client_import.services.progress.tqdm') as mock_tqdm:
            bar = ImportProgressBar(description="Importing")
            mock_tqdm.assert_not_called()

            bar.update(40)
            mock_tqdm.assert_called_once_with(
                total=100,
                desc="Importing",
                unit="%",
                leave=True,
                ncols=80,
                ascii=True,
            )
            mock_tqdm.return_value.update.assert_called_once_with(40)

    def test_updates_by_delta_and_ignores_regressions(self):
        mock_pbar = Mock()
        with patch('client_import.services.progress.is_tty_enabled', return_value=True), \
             patch('client_import.services.progress.tqdm', return_value=mock_pbar):
            bar = ImportProgressBar()
            bar.update(40)
            bar.update(30)
            bar.update(150)
        assert [c.args[0] for c in mock_pbar.update.call_args_list] == [40, 60]
        assert bar.position == 100

    def test_no_bar_without_tty(self):
        with patch('client_import.services.progress.is_tty_enabled', return_value=False), \
             patch('client_import.services.progress.tqdm') as mock_tqdm:
            bar = ImportProgressBar()
            bar.update(50)
            bar.close()
        mock_tqdm.assert_not_called()
        assert bar.pbar is None
        assert bar.position == 50

    def test_listener_closes_on_done(self):
        mock_pbar = Mock()
        with patch('client_import.services.progress.is_tty_enabled', return_value=True), \
             patch('client_import.services.progress.tqdm', return_value=mock_pbar):
            with ImportProgressBar() as bar:
                bar(PipelineSnapshot(state=PipelineState.IMPORTING, progress=50))
                bar(PipelineSnapshot(state=PipelineState.PREVIEWING, progress=0))
                bar(PipelineSnapshot(state=PipelineState.DONE, progress=100))
                assert bar.pbar is None
        mock_pbar.close.assert_called_once()
        assert [c.args[0] for c in mock_pbar.update.call_args_list] == [50, 50]
