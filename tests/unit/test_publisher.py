"""
Tests unitaires pour la publication des sorties HLS
"""
import pytest

from camstream.video_system import ResourceError, StreamPublisher


@pytest.mark.unit
class TestStreamPublisher:

    def test_layout_is_deterministic(self, publisher, streams_dir):
        assert publisher.output_dir('abc') == streams_dir.resolve() / 'abc'
        assert publisher.manifest_path('abc') == streams_dir.resolve() / 'abc' / 'index.m3u8'
        assert publisher.manifest_url('abc') == '/streams/abc/index.m3u8'

    def test_publish_creates_directory_without_manifest(self, publisher):
        """Le manifest n'est pas attendu: FFmpeg l'écrira plus tard"""
        output = publisher.publish('sess-1')

        assert output.output_dir.is_dir()
        assert output.manifest_path == output.output_dir / 'index.m3u8'
        assert not output.manifest_path.exists()
        assert output.url == '/streams/sess-1/index.m3u8'

    def test_publish_is_idempotent_on_existing_directory(self, publisher):
        publisher.publish('sess-1')
        assert publisher.publish('sess-1').output_dir.is_dir()

    def test_publish_fails_with_resource_error(self, tmp_path):
        """Racine occupée par un fichier -> ResourceError"""
        blocker = tmp_path / 'not-a-dir'
        blocker.write_text('x')
        publisher = StreamPublisher(blocker)

        with pytest.raises(ResourceError) as exc_info:
            publisher.publish('sess-1')
        assert exc_info.value.details['session_id'] == 'sess-1'

    def test_custom_prefix(self, streams_dir):
        publisher = StreamPublisher(streams_dir, url_prefix='/hls/')
        assert publisher.manifest_url('x') == '/hls/x/index.m3u8'

    def test_discard_removes_directory(self, publisher):
        output = publisher.publish('sess-1')
        (output.output_dir / 'index0.ts').write_bytes(b'\x47')

        publisher.discard('sess-1')
        assert not output.output_dir.exists()

        # Absent: aucune erreur
        publisher.discard('sess-1')

    def test_purge_removes_leftover_sessions(self, publisher, streams_dir):
        publisher.publish('old-1')
        publisher.publish('old-2')
        (streams_dir / 'README').write_text('keep')

        assert publisher.purge() == 2
        assert [p.name for p in streams_dir.iterdir()] == ['README']

    def test_purge_missing_root(self, tmp_path):
        assert StreamPublisher(tmp_path / 'missing').purge() == 0

    @pytest.mark.parametrize('filename,expected', [
        ('index.m3u8', 'application/vnd.apple.mpegurl'),
        ('index12.ts', 'video/mp2t'),
        ('seg.m4s', 'video/mp4'),
        ('notes.txt', None),
    ])
    def test_media_type(self, filename, expected):
        assert StreamPublisher.media_type(filename) == expected
