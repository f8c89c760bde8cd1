import yaml

from podshell.client.config import ClientConfig, load_client_config, save_client_config


def test_first_load_writes_defaults(tmp_path) -> None:
    path = tmp_path / "sub" / "client.yaml"
    cfg = load_client_config(str(path))
    assert cfg == ClientConfig()
    assert cfg.last_port == 22
    assert yaml.safe_load(path.read_text()) == {
        "last_host": "",
        "last_user": "",
        "last_port": 22,
        "debug": False,
    }


def test_save_then_load(tmp_path) -> None:
    path = str(tmp_path / "client.yaml")
    save_client_config(ClientConfig(last_host="pi.local", last_user="pi", last_port=2222, debug=True), path)
    cfg = load_client_config(path)
    assert (cfg.last_host, cfg.last_user, cfg.last_port, cfg.debug) == ("pi.local", "pi", 2222, True)


def test_unknown_keys_and_bad_port_tolerated(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("last_host: box\nlast_port: nope\ntheme: green\n")
    cfg = load_client_config(str(path))
    assert cfg.last_host == "box"
    assert cfg.last_port == 22


def test_malformed_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("- just\n- a list\n")
    assert load_client_config(str(path)) == ClientConfig()
    assert path.read_text() == "- just\n- a list\n"
