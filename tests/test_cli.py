import gzip
import json

from sqlalchemy import create_engine, text

from flowstore import cli


def _count(url):
    eng = create_engine(url)
    try:
        with eng.connect() as conn:
            return conn.execute(text("SELECT COUNT(*) FROM flows")).scalar_one()
    finally:
        eng.dispose()


def test_cli_ingests_file(tmp_path, flow_line, capsys):
    log = tmp_path / "goflow2.log"
    log.write_text("\n".join([flow_line(), "garbage", flow_line(proto="UDP"), flow_line()]) + "\n")
    url = f"sqlite:///{tmp_path / 'out.db'}"

    rc = cli.main([str(log), "--db", url, "--batch-size", "2"])
    assert rc == cli.EXIT_OK
    summary = json.loads(capsys.readouterr().out)
    assert summary["inserted"] == 3
    assert summary["commits"] == 2
    assert summary["parse_errors"] == 1
    assert _count(url) == 3


def test_cli_reads_gzip_and_bad_utf8(tmp_path, flow_line, capsys):
    log = tmp_path / "goflow2.log.gz"
    with gzip.open(log, "wb") as fh:
        fh.write(flow_line().encode() + b"\n")
        fh.write(b"\xff\xff\n")
        fh.write(flow_line(proto="QUIC").encode() + b"\r\n")
    url = f"sqlite:///{tmp_path / 'out.db'}"

    rc = cli.main([str(log), "--db", url, "--keep-unknown-protocol"])
    assert rc == cli.EXIT_OK
    summary = json.loads(capsys.readouterr().out)
    assert summary["inserted"] == 2
    assert summary["parse_errors"] == 1
    assert summary["filtered"] == 0


def test_cli_store_error_exit_code(tmp_path, flow_line, monkeypatch):
    log = tmp_path / "goflow2.log"
    log.write_text(flow_line() + "\n")

    def _boom(self, tx):
        raise RuntimeError("database is locked")
    monkeypatch.setattr(cli.SqlAlchemyFlowStore, "commit", _boom)

    rc = cli.main([str(log), "--db", f"sqlite:///{tmp_path / 'out.db'}"])
    assert rc == cli.EXIT_STORE_ERROR


def test_cli_missing_input(tmp_path):
    rc = cli.main([str(tmp_path / "nope.log"), "--db", f"sqlite:///{tmp_path / 'out.db'}"])
    assert rc == cli.EXIT_INPUT_ERROR


def test_signal_sets_cancel_event():
    import signal
    import threading

    cancel = threading.Event()
    previous = cli._install_cancel_handlers(cancel)
    try:
        signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    assert cancel.is_set()
    assert signal.getsignal(signal.SIGINT) is previous[signal.SIGINT]


def test_cli_cancelled_exit_code(tmp_path, flow_line, monkeypatch, capsys):
    log = tmp_path / "goflow2.log"
    log.write_text(flow_line() + "\n")

    def _cancel_now(cancel):
        cancel.set()
        return {}
    monkeypatch.setattr(cli, "_install_cancel_handlers", _cancel_now)

    rc = cli.main([str(log), "--db", f"sqlite:///{tmp_path / 'out.db'}"])
    assert rc == cli.EXIT_CANCELLED
    assert json.loads(capsys.readouterr().out)["cancelled"] is True
