"""
Fixtures para tests de integración API.
Usa TestClient de FastAPI contra la app real, con get_db apuntando a la
base en memoria de cada test (ver qa/conftest.py).
"""
import pytest

from fastapi.testclient import TestClient

from hacienda.main import app
from hacienda.dependencies import get_db
from hacienda.security.auth import create_access_token


@pytest.fixture
def client(session_factory, datos):
    """Cliente HTTP sin autenticación."""
    def _get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth(datos):
    """auth(usuario) -> headers con Bearer token del usuario."""
    def _headers(usuario):
        token = create_access_token({"sub": usuario.email})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def pedido_api(client, auth, datos):
    """Crea un pedido de tortilla vía API como admin y devuelve el JSON."""
    def _crear(kilos=5, repartidor=None, cliente=None, fecha=None):
        body = {
            "cliente_id": (cliente or datos.fonda).id,
            "repartidor_id": (repartidor or datos.repartidor).id,
            "detalles": [{"producto_id": datos.tortilla.id, "cantidad": kilos}],
        }
        if fecha:
            body["fecha"] = fecha.isoformat()
        r = client.post("/pedidos", json=body, headers=auth(datos.admin))
        assert r.status_code == 201, r.text
        return r.json()
    return _crear
