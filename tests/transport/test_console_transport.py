"""
Tests for the console transport
"""

import pytest

from linkagent.transport.console import ConsoleTransport


class RecordingListener:

    def __init__(self):
        self.calls = []

    async def on_qr(self, code):
        self.calls.append(("qr", code))

    async def on_credentials_update(self):
        self.calls.append(("creds",))

    async def on_open(self):
        self.calls.append(("open",))

    async def on_close(self, info):
        self.calls.append(("close", info.reason))

    async def on_messages(self, messages):
        self.calls.append(("messages", messages))


class TestConsoleTransport:

    @pytest.mark.asyncio
    async def test_first_start_pairs(self, tmp_path):
        transport = ConsoleTransport(auth_dir=str(tmp_path / "auth"))
        listener = RecordingListener()
        await transport.start(listener)

        assert [c[0] for c in listener.calls[:3]] == ["qr", "creds", "open"]
        assert (tmp_path / "auth" / "session.json").exists()
        assert transport.is_ready()
        await transport.close()
        assert not transport.is_ready()

    @pytest.mark.asyncio
    async def test_existing_session_opens_directly(self, tmp_path):
        auth = tmp_path / "auth"
        auth.mkdir()
        (auth / "session.json").write_text("{}")

        transport = ConsoleTransport(auth_dir=str(auth))
        listener = RecordingListener()
        await transport.start(listener)
        assert [c[0] for c in listener.calls[:1]] == ["open"]
        await transport.close()

    @pytest.mark.asyncio
    async def test_send_text_prints(self, tmp_path, capsys):
        transport = ConsoleTransport(auth_dir=str(tmp_path / "auth"))
        await transport.send_text("console@s.whatsapp.net", "hello")
        assert capsys.readouterr().out == "< hello\n"
