"""
测试 certd 服务入口。
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography import x509

from src.certd.ca import load_ca
from src.certd.run import main, run


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in ("CERTD_CONFIG", "CERTD_LISTEN", "CERTD_PORT", "CERTD_CERT_ADDRS", "CERTD_SETTINGS_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_missing_config_exits_non_zero(tmp_path, capsys):
    """测试配置不存在且未指定 --setup 时启动失败"""
    with patch("src.certd.run.uvicorn.run") as mock_run:
        code = main(["--config", str(tmp_path / "missing.json")])

    assert code == 1
    mock_run.assert_not_called()
    assert "missing.json" in capsys.readouterr().err


def test_no_config_exits_non_zero():
    with patch("src.certd.run.uvicorn.run") as mock_run:
        assert main([]) == 1
    mock_run.assert_not_called()


def test_setup_and_serve(tmp_path):
    """测试 --setup 创建 CA、签发服务证书并以 TLS 启动"""
    config_path = tmp_path / "ca.json"
    seen = {}

    def fake_run(app, **kwargs):
        seen.update(kwargs)
        seen["cert"] = Path(kwargs["ssl_certfile"]).read_bytes()
        seen["app"] = app

    with patch("src.certd.run.uvicorn.run", side_effect=fake_run):
        code = main(["--setup", "--config", str(config_path), "--listen", "127.0.0.1", "--port", "9443"])

    assert code == 0
    assert seen["host"] == "127.0.0.1"
    assert seen["port"] == 9443
    assert seen["log_config"] is None
    assert not Path(seen["ssl_certfile"]).exists()
    assert not Path(seen["ssl_keyfile"]).exists()

    ca = load_ca(config_path)
    assert seen["app"].state.ca.cert_bytes == ca.cert_bytes
    served = x509.load_pem_x509_certificate(seen["cert"])
    served.verify_directly_issued_by(ca.certificate())
    san = served.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["127.0.0.1"]


def test_cert_addrs_override_listen(tmp_path):
    seen = {}

    def fake_run(app, **kwargs):
        seen["cert"] = Path(kwargs["ssl_certfile"]).read_bytes()

    with patch("src.certd.run.uvicorn.run", side_effect=fake_run):
        code = main(
            ["--setup", "--config", str(tmp_path / "ca.json"), "--cert-addrs", "ca.internal,10.0.0.5"]
        )

    assert code == 0
    served = x509.load_pem_x509_certificate(seen["cert"])
    san = served.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["ca.internal"]


def test_malformed_settings_file_exits_non_zero(tmp_path, capsys):
    """测试设置文件损坏时输出错误并返回 1"""
    (tmp_path / "certd.settings.json").write_text("{broken", encoding="utf-8")
    with patch("src.certd.run.uvicorn.run") as mock_run:
        assert main(["--setup", "--config", str(tmp_path / "ca.json")]) == 1

    mock_run.assert_not_called()
    assert "certd.settings.json" in capsys.readouterr().err
    assert not (tmp_path / "ca.json").exists()


def test_console_entry_reports_config_error(tmp_path, monkeypatch, capsys):
    (tmp_path / "certd.settings.json").write_text("[]", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["certd"])

    with patch("src.certd.run.configure_logging") as mock_configure:
        with pytest.raises(SystemExit) as exc_info:
            run()

    assert exc_info.value.code == 1
    mock_configure.assert_not_called()
    assert "certd.settings.json" in capsys.readouterr().err
