import threading

import pytest

from spotui.application.shared import ReadWriteLock, SharedState
from spotui.application.state import State
from spotui.domain.entities import Artist, Context, ContextType, EventState, FullAlbum, PlaybackContext, Track
from spotui.domain.errors import ReadOnlyStateError
from spotui.domain.sorting import ContextSortOrder


class TestReadHandle:
    """Tests for mutation protection on read handles."""

    def setup_method(self):
        self.shared = SharedState()

    def test_reads_are_forwarded(self):
        with self.shared.read() as state:
            assert state.is_running is True
            assert state.get_event_state() is EventState.DEFAULT
            assert state.get_context_filtered_tracks() == ()

    def test_assignment_through_read_handle_is_refused(self):
        with self.shared.read() as state:
            with pytest.raises(ReadOnlyStateError):
                state.is_running = False
            with pytest.raises(ReadOnlyStateError):
                del state.devices

        with self.shared.read() as state:
            assert state.is_running is True

    @pytest.mark.parametrize("mutator,args", [
        ("set_event_state", (EventState.CONTEXT_SEARCH,)),
        ("set_search_query", ("q",)),
        ("clear_search_query", ()),
        ("sort_context_tracks", (ContextSortOrder.ALBUM,)),
        ("set_context_tracks", ([],)),
        ("set_devices", ([],)),
    ])
    def test_mutators_are_refused(self, mutator, args):
        with self.shared.read() as state:
            with pytest.raises(ReadOnlyStateError):
                getattr(state, mutator)(*args)

    def test_read_only_error_is_an_attribute_error(self):
        assert issubclass(ReadOnlyStateError, AttributeError)


class TestNestedReadOnly:
    """Tests that nothing reachable from a read handle can change the state."""

    def setup_method(self):
        self.shared = SharedState()
        with self.shared.write() as state:
            state.set_context_tracks([Track(uri="spotify:track:1", name="One", artists=[Artist(name="x")])])
            state.set_search_query("one")

    def test_lists_come_back_as_tuples(self):
        with self.shared.read() as state:
            tracks = state.current_context_tracks
            assert isinstance(tracks, tuple)
            with pytest.raises(AttributeError):
                tracks.append(Track(uri="spotify:track:2"))
            with pytest.raises(AttributeError):
                tracks[0].artists.append(Artist(name="injected"))
            assert isinstance(state.devices, tuple)
            assert isinstance(state.context_search_state.tracks, tuple)

    def test_search_state_cannot_be_changed(self):
        with self.shared.read() as state:
            assert state.context_search_state.is_active() is True
            with pytest.raises(ReadOnlyStateError):
                state.context_search_state.query = "zzz"

        with self.shared.read() as state:
            assert state.context_search_state.query == "one"
            assert [t.name for t in state.get_context_filtered_tracks()] == ["One"]

    def test_cursors_cannot_be_moved(self):
        with self.shared.read() as state:
            assert state.context_tracks_table_ui_state.selected() == 0
            with pytest.raises(ReadOnlyStateError):
                state.context_tracks_table_ui_state.select(7)
            with pytest.raises(ReadOnlyStateError):
                state.context_tracks_table_ui_state.offset = 3
            with pytest.raises(ReadOnlyStateError):
                state.playlists_list_ui_state.select(1)

        with self.shared.read() as state:
            assert state.context_tracks_table_ui_state.selected() == 0
            assert state.context_tracks_table_ui_state.offset == 0

    def test_key_prefix_cannot_be_extended(self):
        with self.shared.read() as state:
            assert state.current_key_prefix.is_empty() is True
            with pytest.raises(ReadOnlyStateError):
                state.current_key_prefix.push("g")
            with pytest.raises(ReadOnlyStateError):
                state.current_key_prefix.clear()
            with pytest.raises(AttributeError):
                state.current_key_prefix.keys.append("g")

        with self.shared.read() as state:
            assert state.current_key_prefix.keys == ()

    def test_config_cannot_be_changed(self):
        with self.shared.read() as state:
            assert state.keymap_config.command_for('q') == 'Quit'
            with pytest.raises(ReadOnlyStateError):
                state.app_config.page_size = 1
            with pytest.raises(TypeError):
                state.keymap_config.keymaps['q'] = 'Nothing'

        with self.shared.read() as state:
            assert state.app_config.page_size == 50
            assert state.keymap_config.command_for('q') == 'Quit'


class TestWriteHandle:
    """Tests for writes and their visibility."""

    def test_write_is_visible_to_next_read(self):
        shared = SharedState()
        with shared.write() as state:
            state.set_playback_context(PlaybackContext(context=Context(type=ContextType.ALBUM, uri="spotify:album:1")))
            state.set_current_album(FullAlbum(id="1", name="Kid A"))
            state.set_context_tracks([Track(uri="spotify:track:1", name="Idioteque")])

        with shared.read() as state:
            assert state.get_context_type() is ContextType.ALBUM
            assert state.get_context_description() == "Album: Kid A"
            assert [t.name for t in state.get_context_filtered_tracks()] == ["Idioteque"]

    def test_wraps_given_state(self):
        state = State()
        shared = SharedState(state)
        with shared.write() as handle:
            assert handle is state

    def test_lock_is_released_when_writer_raises(self):
        shared = SharedState()
        with pytest.raises(RuntimeError):
            with shared.write():
                raise RuntimeError("boom")

        with shared.write() as state:
            state.is_running = False
        with shared.read() as state:
            assert state.is_running is False


class TestReadWriteLock:
    """Concurrency tests for the reader-writer lock."""

    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        barrier = threading.Barrier(3, timeout=5)
        errors = []

        def reader():
            lock.acquire_read()
            try:
                barrier.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)
            finally:
                lock.release_read()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert errors == []

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        reader_entered = threading.Event()

        def reader():
            lock.acquire_read()
            reader_entered.set()
            lock.release_read()

        lock.acquire_write()
        thread = threading.Thread(target=reader)
        thread.start()
        try:
            assert not reader_entered.wait(timeout=0.2)
        finally:
            lock.release_write()

        assert reader_entered.wait(timeout=5)
        thread.join(timeout=5)

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        writer_entered = threading.Event()

        def writer():
            lock.acquire_write()
            writer_entered.set()
            lock.release_write()

        lock.acquire_read()
        thread = threading.Thread(target=writer)
        thread.start()
        try:
            assert not writer_entered.wait(timeout=0.2)
        finally:
            lock.release_read()

        assert writer_entered.wait(timeout=5)
        thread.join(timeout=5)

    def test_concurrent_writers_do_not_lose_updates(self):
        shared = SharedState()

        def writer():
            for _ in range(200):
                with shared.write() as state:
                    keys = state.current_key_prefix
                    keys.push("k")

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        with shared.read() as state:
            assert len(state.current_key_prefix.keys) == 800
