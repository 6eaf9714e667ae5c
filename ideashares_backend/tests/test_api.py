from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from ideas.exceptions import FetchError
from ideas.models import Idea, Investment
from ideas.store import RecordStore
from tests.conftest import INVESTOR, OWNER

pytestmark = pytest.mark.django_db

PAYLOAD = {
    "owner_address": OWNER,
    "title": "Mobile repair vans",
    "description": "Phone repair on wheels",
    "image_url": "https://example.com/van.jpg",
    "money_needed": "5000",
    "share_offered": "1% equity for 500",
    "duration_days": 30,
}


def test_post_idea(client):
    before = timezone.now()
    resp = client.post("/api/ideas/", PAYLOAD, content_type="application/json")
    assert resp.status_code == 201

    body = resp.json()
    assert body["status"] == "open"
    assert body["money_needed"] == "5000.000000"
    idea = Idea.objects.get(pk=body["id"])
    assert idea.created_at >= before
    assert idea.end_date == idea.created_at + timedelta(days=30)


@pytest.mark.parametrize("field, value", [
    ("duration_days", 0),
    ("money_needed", "-1"),
    ("title", ""),
    ("image_url", "not a url"),
])
def test_post_idea_validation(client, field, value):
    resp = client.post("/api/ideas/", {**PAYLOAD, field: value}, content_type="application/json")
    assert resp.status_code == 400
    assert Idea.objects.count() == 0


def test_post_idea_zero_goal(client):
    resp = client.post("/api/ideas/", {**PAYLOAD, "money_needed": "0"}, content_type="application/json")
    assert resp.status_code == 400
    assert "money_needed" in resp.json()["detail"]


def test_list_reconciles_expiry(client):
    now = timezone.now()
    Idea.objects.create(
        owner_address=OWNER, title="Overdue", description="d", money_needed=Decimal("10"),
        share_offered="1%", created_at=now - timedelta(days=10), end_date=now - timedelta(days=1),
    )
    client.post("/api/ideas/", PAYLOAD, content_type="application/json")

    resp = client.get("/api/ideas/")
    assert resp.status_code == 200
    assert [(i["title"], i["status"]) for i in resp.json()] == [
        ("Mobile repair vans", "open"),
        ("Overdue", "expired"),
    ]
    assert Idea.objects.get(title="Overdue").status == Idea.EXPIRED


def test_list_store_failure(client, monkeypatch):
    def broken_query(self, *args, **kwargs):
        raise FetchError("database is locked")

    monkeypatch.setattr(RecordStore, "query", broken_query)
    resp = client.get("/api/ideas/")
    assert resp.status_code == 503


def test_idea_investments(client):
    idea_id = client.post("/api/ideas/", PAYLOAD, content_type="application/json").json()["id"]
    Investment.objects.create(
        idea_id=idea_id, investor_address=INVESTOR, amount=Decimal("500"),
        share_percentage=Decimal("10"), transaction_id="0xfeed", invested_at=timezone.now(),
    )

    resp = client.get(f"/api/ideas/{idea_id}/investments/")
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(body["total_invested"]) == Decimal("500")
    assert body["investments"][0]["transaction_id"] == "0xfeed"
    assert body["investments"][0]["share_percentage"] == "10.000000"


def test_idea_investments_unknown_idea(client):
    assert client.get("/api/ideas/4242/investments/").status_code == 404


def test_admin_lists_ideas(admin_client):
    admin_client.post("/api/ideas/", PAYLOAD, content_type="application/json")
    resp = admin_client.get("/admin/ideas/idea/")
    assert resp.status_code == 200
    assert b"Mobile repair vans" in resp.content
    assert admin_client.get("/admin/ideas/idea/add/").status_code == 403
    assert admin_client.get("/admin/ideas/investment/add/").status_code == 403


def test_admin_cannot_edit_ideas(admin_client):
    admin_client.post("/api/ideas/", PAYLOAD, content_type="application/json")
    idea = Idea.objects.get()
    url = f"/admin/ideas/idea/{idea.pk}/change/"

    resp = admin_client.post(url, {
        "owner_address": INVESTOR,
        "title": idea.title,
        "money_needed": "1",
        "status": Idea.FUNDED,
    })
    assert resp.status_code == 403
    idea.refresh_from_db()
    assert idea.owner_address == OWNER
    assert idea.money_needed == Decimal("5000")
    assert idea.status == Idea.OPEN
    assert admin_client.post(f"/admin/ideas/idea/{idea.pk}/delete/", {"post": "yes"}).status_code == 403
