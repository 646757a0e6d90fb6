from __future__ import annotations

import pytest

from rma.models import Attachment, Sheet, SheetHistory


def _create(client, business_id, headers, **fields):
    payload = {"order_no": "12345678", "date_received": "2024-02-10", "order_date": "2024-01-15"}
    payload.update(fields)
    response = client.post(f"/api/sheets/{business_id}", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_derives_platform_and_return_window(client, tenants, headers_for) -> None:
    headers = headers_for(tenants["acme_user"])

    sheet = _create(client, tenants["acme"].id, headers, platform="Amazon", return_within_30_days="No")

    assert sheet["platform"] == "Back Market"
    assert sheet["return_within_30_days"] == "Yes"
    assert sheet["locked"] == "No"
    assert sheet["oow_case"] == "No"
    assert sheet["business_id"] == tenants["acme"].id


def test_create_amazon_sheet_outside_window(client, tenants, headers_for) -> None:
    sheet = _create(
        client,
        tenants["acme"].id,
        headers_for(tenants["acme_user"]),
        order_no="AMZ-9981",
        date_received="2024-03-20",
        order_date="2024-01-01",
    )

    assert sheet["platform"] == "Amazon"
    assert sheet["return_within_30_days"] == "No"


def test_create_requires_order_number(client, tenants, headers_for) -> None:
    response = client.post(
        f"/api/sheets/{tenants['acme'].id}",
        json={"order_no": "  "},
        headers=headers_for(tenants["acme_user"]),
    )

    assert response.status_code == 400
    assert response.json()["details"] == {"fields": ["order_no"]}


def test_partial_updates_do_not_overwrite_other_fields(client, tenants, headers_for) -> None:
    business_id = tenants["acme"].id
    headers = headers_for(tenants["acme_user"])
    sheet = _create(client, business_id, headers, customer_name="Jane", resolution="Pending")

    first = client.put(f"/api/sheets/{business_id}", json={"id": sheet["id"], "resolution": "Refunded"}, headers=headers)
    second = client.put(f"/api/sheets/{business_id}", json={"id": sheet["id"], "customer_name": "Jane Doe"}, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    body = second.json()
    assert body["resolution"] == "Refunded"
    assert body["customer_name"] == "Jane Doe"
    assert body["order_no"] == "12345678"


def test_update_recomputes_derived_fields(client, tenants, headers_for) -> None:
    business_id = tenants["acme"].id
    headers = headers_for(tenants["acme_user"])
    sheet = _create(client, business_id, headers)

    response = client.put(
        f"/api/sheets/{business_id}",
        json={"id": sheet["id"], "order_no": "AMZ-1", "order_date": "2023-12-01"},
        headers=headers,
    )

    assert response.json()["platform"] == "Amazon"
    assert response.json()["return_within_30_days"] == "No"


def test_update_records_field_diff_in_history(client, db, tenants, headers_for) -> None:
    business_id = tenants["acme"].id
    headers = headers_for(tenants["acme_admin"])
    sheet = _create(client, business_id, headers, resolution="Pending")

    client.put(f"/api/sheets/{business_id}", json={"id": sheet["id"], "resolution": "Refunded"}, headers=headers)
    response = client.get(f"/api/sheets/{business_id}/{sheet['id']}/history", headers=headers)

    assert response.status_code == 200
    history = response.json()
    assert [entry["action"] for entry in history] == ["updated", "created"]
    assert history[0]["changes"] == {"resolution": {"old": "Pending", "new": "Refunded"}}
    assert history[0]["username"] == "acme_admin"


def test_update_unknown_sheet_is_404(client, tenants, headers_for) -> None:
    response = client.put(
        f"/api/sheets/{tenants['acme'].id}",
        json={"id": 9999, "resolution": "x"},
        headers=headers_for(tenants["acme_user"]),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "SHEET_NOT_FOUND"


def test_list_orders_newest_received_first(client, tenants, headers_for) -> None:
    business_id = tenants["acme"].id
    headers = headers_for(tenants["acme_user"])
    _create(client, business_id, headers, order_no="A-1", date_received="2024-01-01")
    _create(client, business_id, headers, order_no="A-2", date_received="2024-03-01")
    _create(client, business_id, headers, order_no="A-3", date_received="2024-02-01")

    response = client.get(f"/api/sheets/{business_id}", headers=headers)

    assert [sheet["order_no"] for sheet in response.json()] == ["A-2", "A-3", "A-1"]


def test_delete_removes_sheet_attachments_and_remote_files(client, db, storage, tenants, headers_for) -> None:
    business_id = tenants["acme"].id
    headers = headers_for(tenants["acme_user"])
    sheet = _create(client, business_id, headers)
    key = f"business_{business_id}/sheet_{sheet['id']}/1700000000000_abcdef.png"
    storage.put(key, b"png")
    db.add(Attachment(
        sheet_id=sheet["id"],
        business_id=business_id,
        file_name="1700000000000_abcdef.png",
        original_name="photo.png",
        file_size=3,
        mime_type="image/png",
        remote_path=key,
    ))
    db.commit()

    response = client.request("DELETE", f"/api/sheets/{business_id}", json={"id": sheet["id"]}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Sheet deleted"}
    db.expire_all()
    assert db.get(Sheet, sheet["id"]) is None
    assert db.query(Attachment).count() == 0
    assert not (storage.base_dir / key).exists()
    assert db.query(SheetHistory).filter(SheetHistory.action == "deleted").count() == 1


def test_delete_of_other_tenants_sheet_is_silent_noop(client, db, tenants, headers_for) -> None:
    other_sheet = _create(client, tenants["other"].id, headers_for(tenants["other_admin"]))
    acme_id = tenants["acme"].id

    response = client.request(
        "DELETE",
        f"/api/sheets/{acme_id}",
        json={"id": other_sheet["id"]},
        headers=headers_for(tenants["acme_admin"]),
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Sheet, other_sheet["id"]) is not None


@pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
def test_business_admin_cannot_touch_other_business(client, tenants, headers_for, method) -> None:
    response = client.request(
        method,
        f"/api/sheets/{tenants['other'].id}",
        json={"id": 1, "order_no": "12345678"},
        headers=headers_for(tenants["acme_admin"]),
    )

    assert response.status_code == 403


def test_super_admin_reads_any_business(client, tenants, headers_for) -> None:
    response = client.get(f"/api/sheets/{tenants['other'].id}", headers=headers_for(tenants["super"]))

    assert response.status_code == 200
    assert response.json() == []


def test_missing_token_is_401(client, tenants) -> None:
    response = client.get(f"/api/sheets/{tenants['acme'].id}")

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_malformed_token_is_401(client, tenants) -> None:
    response = client.get(f"/api/sheets/{tenants['acme'].id}", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401
