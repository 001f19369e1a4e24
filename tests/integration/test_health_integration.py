"""
Tests d'intégration pour le health check et le démarrage de l'application
"""
from unittest.mock import patch

import pytest

from camstream.main import create_app


@pytest.mark.integration
class TestHealthCheckIntegration:
    """Tests d'intégration pour /api/health"""

    def test_basic_health_check(self, client):
        response = client.get('/api/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'OK'
        assert data['service'] == 'camstream'
        assert data['environment'] == 'testing'
        assert data['active_sessions'] == 0

        system = data['system']
        assert 'memory_percent' in system
        assert 'disk_ok' in system
        assert isinstance(system['ffmpeg_processes'], list)

    def test_health_counts_sessions(self, client):
        client.post('/start-stream', json={'url': 'rtsp://cam/1'})

        data = client.get('/api/health').get_json()
        assert data['active_sessions'] == 1

    @patch('camstream.routes.health.system_snapshot')
    def test_health_survives_monitoring_failure(self, mock_snapshot, client):
        """Le service répond même si psutil échoue"""
        mock_snapshot.side_effect = RuntimeError('psutil indisponible')

        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.get_json()['system'] == {'error': 'psutil indisponible'}

    def test_index(self, client):
        response = client.get('/')

        assert response.status_code == 200
        assert response.get_json()['endpoints']['start'] == '/start-stream'


@pytest.mark.integration
class TestStartupIntegration:
    """Tests de démarrage de l'application"""

    def test_stale_outputs_are_purged(self, tmp_path, ffmpeg_on_path):
        """Les répertoires d'une exécution précédente sont supprimés"""
        streams = tmp_path / 'streams'
        (streams / 'old-session').mkdir(parents=True)
        (streams / 'old-session' / 'index.m3u8').write_text('#EXTM3U\n')

        app = create_app('testing', config_overrides={
            'STREAMS_DIR': str(streams),
            'LOGS_DIR': str(tmp_path / 'logs'),
        })

        assert streams.is_dir()
        assert list(streams.iterdir()) == []
        assert app.extensions['stream_manager'].active_count() == 0

    def test_config_overrides(self, app, tmp_path):
        manager = app.extensions['stream_manager']

        assert app.config['TESTING'] is True
        assert manager.publisher.root == (tmp_path / 'streams').resolve()
        assert manager.stop_grace_seconds == 0
