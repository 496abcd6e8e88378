"""
Tests de API - Pagos y corte de pedidos
"""
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from hacienda.application import services_abonos
from hacienda.domain.enums import OrigenAbono
from hacienda.domain.models_abonos import Abono
from hacienda.domain.models_pedidos import Pedido

DIA = date(2024, 1, 5)


def entregar(client, headers, pedido_id, monto, cobro=None):
    body = {"monto_pagado": monto}
    if cobro:
        body["fecha_cobro"] = cobro.isoformat()
    if not monto:
        body["observaciones"] = "Paga después"
    r = client.post(f"/pedidos/{pedido_id}/entregar", headers=headers, json=body)
    assert r.status_code == 200, r.text
    return r.json()


class TestPagosAPI:
    """Tests de endpoints de pagos"""

    def test_pago_sin_pedido_ni_cliente(self, client, auth, datos):
        """POST /pagos sin pedido_id ni cliente_id debe retornar 422"""
        r = client.post("/pagos", headers=auth(datos.admin), json={"monto": 10})
        assert r.status_code == 422

    def test_pago_monto_negativo(self, client, auth, datos):
        r = client.post("/pagos", headers=auth(datos.admin), json={"monto": -5, "cliente_id": datos.fonda.id})
        assert r.status_code == 422

    def test_pago_distribuido(self, client, auth, datos, pedido_api):
        """El pago al cliente liquida primero el pedido más antiguo"""
        headers = auth(datos.admin)
        a = pedido_api(kilos=5, fecha=date(2024, 1, 1))
        b = pedido_api(kilos=6, fecha=date(2024, 1, 2))
        entregar(client, headers, a["id"], 20)
        entregar(client, headers, b["id"], 0)

        r = client.post("/pagos", headers=headers, json={"monto": "150", "cliente_id": datos.fonda.id})
        assert r.status_code == 201
        resumen = r.json()
        assert resumen["monto_aplicado"] == 150.0
        assert resumen["pedidos_afectados"] == 2
        assert [(d["pedido_id"], d["nuevo_saldo"]) for d in resumen["detalles"]] == [(a["id"], 0.0), (b["id"], 50.0)]
        assert resumen["nuevo_adeudo_cliente"] == 50.0

        r = client.post("/pagos", headers=headers, json={"monto": "60", "cliente_id": datos.fonda.id})
        assert r.status_code == 409

        deuda = client.get(f"/pagos/clientes/{datos.fonda.id}/resumen", headers=headers).json()
        assert deuda["adeudo_total"] == 50.0
        assert [p["id"] for p in deuda["pedidos_pendientes"]] == [b["id"]]

    def test_abono_a_pedido(self, client, auth, datos, pedido_api):
        headers = auth(datos.admin)
        pedido = pedido_api(kilos=15)
        entregar(client, headers, pedido["id"], 0)

        r = client.post(f"/pedidos/{pedido['id']}/abonos", headers=headers, json={"monto": 100})
        assert r.status_code == 201
        assert r.json()["detalles"][0]["nuevo_saldo"] == 200.0

        r = client.post(f"/pedidos/{pedido['id']}/abonos", headers=headers, json={"monto": 250})
        assert r.status_code == 409
        assert "excede el saldo" in r.json()["detail"]

        historial = client.get(f"/pagos/clientes/{datos.fonda.id}/historial", headers=headers).json()
        assert historial["total_pagado"] == 100.0
        assert historial["adeudo_actual"] == 200.0

    def test_clientes_con_deuda(self, client, auth, datos, pedido_api):
        headers = auth(datos.admin)
        pedido = pedido_api(kilos=3, cliente=datos.taqueria)
        entregar(client, headers, pedido["id"], 0)

        r = client.get("/pagos/clientes-con-deuda", headers=headers)
        assert [(c["id"], c["adeudo"]) for c in r.json()] == [(datos.taqueria.id, 60.0)]

    def test_invitado_no_ve_pagos(self, client, auth, datos):
        assert client.get("/pagos/clientes-con-deuda", headers=auth(datos.invitado)).status_code == 403


class TestPagoAtomicoAPI:
    """Un pago que falla a la mitad no deja abonos, saldos ni historial"""

    def test_falla_en_historial_deshace_pago_distribuido(
        self, client, auth, datos, pedido_api, session_factory, monkeypatch,
    ):
        headers = auth(datos.admin)
        a = pedido_api(kilos=5, fecha=date(2024, 1, 1))
        b = pedido_api(kilos=5, fecha=date(2024, 1, 2))
        entregar(client, headers, a["id"], 0)
        entregar(client, headers, b["id"], 0)

        original = services_abonos.registrar_historial
        llamadas = []

        def historial_que_falla(*args, **kwargs):
            llamadas.append(args[1])
            if len(llamadas) == 2:
                raise OperationalError("INSERT INTO historial_pedidos", {}, Exception("disco lleno"))
            return original(*args, **kwargs)

        monkeypatch.setattr(services_abonos, "registrar_historial", historial_que_falla)
        r = client.post("/pagos", headers=headers, json={"monto": "150", "cliente_id": datos.fonda.id})
        assert r.status_code == 500
        assert llamadas == [a["id"], b["id"]]

        db = session_factory()
        try:
            primero = db.get(Pedido, a["id"])
            assert primero.saldo_pendiente == Decimal("100.00")
            assert primero.monto_pagado == Decimal("0.00")
            assert db.query(Abono).filter_by(origen=OrigenAbono.ABONO.value).count() == 0
        finally:
            db.close()

        historial = client.get(f"/pedidos/{a['id']}/historial", headers=headers).json()
        assert [h["accion"] for h in historial] == ["estado_entregado", "creado"]


class TestCortePedidosAPI:
    """Tests del cierre de caja del repartidor"""

    def _jornada(self, client, headers, pedido_api):
        for kilos, pago in [(5, 50), (5, 60), (5, 40)]:
            pedido = pedido_api(kilos=kilos, fecha=DIA)
            entregar(client, headers, pedido["id"], pago, cobro=DIA)

    def test_cierre_completo(self, client, auth, datos, pedido_api):
        self._jornada(client, auth(datos.admin), pedido_api)
        url = f"/cortes-pedidos/cierre/{DIA.isoformat()}/{datos.repartidor.id}"
        headers = auth(datos.jefe_reparto)

        detalle = client.get(url, headers=headers).json()
        assert detalle["totales"]["esperado"] == 150.0
        segunda = detalle["entregas"][1]

        r = client.post(url, headers=headers, json={
            "detalles": [{"tipo": "entrega", "id": segunda["id"], "recibido": False}],
            "notas_generales": "Faltó una entrega",
        })
        assert r.status_code == 200
        data = r.json()
        assert data["cerrado"] is True
        assert data["totales"] == {"esperado": 150.0, "recibido": 90.0, "diferencia": -60.0}
        assert data["corte"]["cerrado_por_nombre"] == "Luis"

        r = client.post(url, headers=headers, json={"detalles": []})
        assert r.status_code == 409

        historial = client.get("/cortes-pedidos/historial", params={"mes": 1, "anio": 2024}, headers=headers).json()
        assert len(historial) == 1
        assert historial[0]["diferencia"] == -60.0

    def test_repartidor_no_cierra_caja(self, client, auth, datos):
        url = f"/cortes-pedidos/cierre/{DIA.isoformat()}/{datos.repartidor.id}"
        headers = auth(datos.repartidor)
        assert client.get(url, headers=headers).status_code == 200
        assert client.post(url, headers=headers, json={"detalles": []}).status_code == 403

    def test_borrador(self, client, auth, datos, pedido_api):
        self._jornada(client, auth(datos.admin), pedido_api)
        url = f"/cortes-pedidos/cierre/{DIA.isoformat()}/{datos.repartidor.id}"
        headers = auth(datos.admin)
        primera = client.get(url, headers=headers).json()["entregas"][0]

        r = client.post(f"{url}/borrador", headers=headers, json={
            "detalles": [{"tipo": "entrega", "id": primera["id"], "recibido": False}],
        })
        assert r.status_code == 200
        assert r.json()["cerrado"] is False
        assert r.json()["corte"]["estado"] == "borrador"
        assert r.json()["totales"]["recibido"] == 100.0

    def test_marca_invalida(self, client, auth, datos):
        url = f"/cortes-pedidos/cierre/{DIA.isoformat()}/{datos.repartidor.id}"
        r = client.post(url, headers=auth(datos.admin), json={"detalles": [{"tipo": "propina", "id": 1}]})
        assert r.status_code == 422

    def test_ticket(self, client, auth, datos, pedido_api):
        headers = auth(datos.admin)
        self._jornada(client, headers, pedido_api)
        base = f"/cortes-pedidos/ticket/{DIA.isoformat()}/{datos.repartidor.id}"
        assert client.get(base, headers=headers).status_code == 404

        client.post(f"/cortes-pedidos/cierre/{DIA.isoformat()}/{datos.repartidor.id}", headers=headers, json={})
        ticket = client.get(base, headers=headers).json()
        assert ticket["totales"]["recibido"] == 150.0
        assert ticket["fecha"].startswith("viernes")

        pdf = client.get(f"{base}/pdf", headers=headers)
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content.startswith(b"%PDF")
