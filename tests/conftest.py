import threading
import time
import requests
import pytest
from tests.virtual_letterboxd import app as letterboxd_mock_app

VIRTUAL_PORT = 8097


@pytest.fixture(scope="session")
def virtual_letterboxd():
    """Fixture to run a virtual Letterboxd + StremThru server in a background thread."""
    server_thread = threading.Thread(
        target=lambda: letterboxd_mock_app.run(port=VIRTUAL_PORT, debug=False, use_reloader=False)
    )
    server_thread.daemon = True
    server_thread.start()

    # Wait for server to be ready
    base_url = f"http://localhost:{VIRTUAL_PORT}"
    timeout = 5
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            requests.get(f"{base_url}/cinephile/watchlist/")
            break
        except requests.exceptions.ConnectionError:
            time.sleep(0.1)
    else:
        pytest.fail("Virtual Letterboxd server failed to start")

    return base_url


from app import app as flask_app
from tests.virtual_letterboxd import poster_block, poster_url, watchlist_html


@pytest.fixture(autouse=True)
def temp_config(tmp_path):
    """Point the config module at a throwaway config file for every test."""
    test_config_dir = tmp_path / "config"
    test_config_dir.mkdir()
    test_config_file = test_config_dir / "config.json"

    import config
    original_config_file = config.CONFIG_FILE
    original_config_dir = config.CONFIG_DIR

    config.CONFIG_FILE = str(test_config_file)
    config.CONFIG_DIR = str(test_config_dir)

    yield test_config_file

    config.CONFIG_FILE = original_config_file
    config.CONFIG_DIR = original_config_dir


@pytest.fixture
def app():
    flask_app.config.update({
        "TESTING": True,
    })

    with flask_app.app_context():
        yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def three_film_page():
    return watchlist_html([
        poster_block("dune-part-two", name="Dune: Part Two (2024)", poster=poster_url(617443, "dune-part-two")),
        poster_block("past-lives", name="Past Lives (2023)"),
        poster_block("aftersun", alt="Aftersun"),
    ])


@pytest.fixture
def empty_page():
    return watchlist_html([])
