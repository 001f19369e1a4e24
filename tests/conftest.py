"""
Configuration pytest pour Camstream
Fixtures partagées: faux processus FFmpeg, SessionManager, application Flask
"""
import io
import itertools
import subprocess
import threading
import time

import pytest

from camstream.main import create_app
from camstream.video_system import HlsTranscoder, SessionManager, StreamPublisher

_pids = itertools.count(40000)


class FakeProcess:
    """Processus FFmpeg simulé: ne se termine que sur signal, kill ou exit()"""

    def __init__(self, args, stderr=b'', exit_on_signal=True):
        self.args = args
        self.pid = next(_pids)
        self.stderr = io.BytesIO(stderr)
        self.returncode = None
        self.signals = []
        self.killed = False
        self.exit_on_signal = exit_on_signal
        self._exited = threading.Event()

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def send_signal(self, sig):
        self.signals.append(sig)
        if self.exit_on_signal:
            self.exit(255)

    def kill(self):
        self.killed = True
        self.exit(-9)

    def exit(self, code):
        if self.returncode is None:
            self.returncode = code
            self._exited.set()


class FakePopen:
    """Remplaçant de subprocess.Popen qui enregistre les lancements"""

    def __init__(self):
        self.calls = []
        self.processes = []
        self.error = None
        self.stderr = b''
        self.exit_on_signal = True

    def __call__(self, cmd, **kwargs):
        if self.error is not None:
            raise self.error
        process = FakeProcess(cmd, stderr=self.stderr, exit_on_signal=self.exit_on_signal)
        self.calls.append((cmd, kwargs))
        self.processes.append(process)
        return process

    def release_all(self):
        for process in self.processes:
            process.exit(0)


def wait_until(predicate, timeout=2.0, interval=0.01):
    """Attendre qu'une condition devienne vraie (threads de surveillance)"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_for():
    return wait_until


@pytest.fixture
def fake_popen():
    """Mock FFmpeg pour les tests"""
    popen = FakePopen()
    yield popen
    popen.release_all()


@pytest.fixture
def ffmpeg_on_path(monkeypatch):
    """FFmpeg 'présent' dans le PATH"""
    monkeypatch.setattr(
        'camstream.video_system.transcoder.shutil.which',
        lambda name: '/usr/bin/ffmpeg'
    )


@pytest.fixture
def streams_dir(tmp_path):
    path = tmp_path / 'streams'
    path.mkdir()
    return path


@pytest.fixture
def publisher(streams_dir):
    return StreamPublisher(streams_dir)


@pytest.fixture
def transcoder(tmp_path, fake_popen, ffmpeg_on_path):
    return HlsTranscoder(
        ffmpeg_path='ffmpeg',
        logs_dir=tmp_path / 'logs' / 'ffmpeg',
        popen=fake_popen
    )


@pytest.fixture
def manager(publisher, transcoder):
    """SessionManager sans expiration ni kill différé"""
    manager = SessionManager(publisher, transcoder, stop_grace_seconds=0)
    yield manager
    manager.shutdown()


@pytest.fixture
def app(tmp_path, fake_popen, ffmpeg_on_path, monkeypatch):
    """Fixture de l'application Flask pour les tests"""
    app = create_app('testing', config_overrides={
        'STREAMS_DIR': str(tmp_path / 'streams'),
        'LOGS_DIR': str(tmp_path / 'logs'),
    })
    manager = app.extensions['stream_manager']
    monkeypatch.setattr(manager.transcoder, '_popen', fake_popen)
    yield app
    manager.shutdown()


@pytest.fixture
def client(app):
    """Client de test Flask"""
    return app.test_client()
