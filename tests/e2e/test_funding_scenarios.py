"""
E2E funding scenarios driven entirely through the HTTP surface.

Personas:
- Saver on a fortnightly pay cycle with a single $1200 bill due in 60 days
- Same saver after topping the fund up to the full amount
- Saver with a $500 per-cycle cap and two $1200 bills
- Monthly earner whose rent is anchored on the 31st
- Saver trialling a what-if before committing it
"""

import pytest
from datetime import date
from fastapi.testclient import TestClient

AS_OF = {"as_of": "2025-01-01"}


def _recalculate(client: TestClient, params=AS_OF) -> dict:
    response = client.post("/v1/engine/recalculate", params=params)
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
def test_fortnightly_saver_single_bill(client: TestClient, make_obligation, make_settings):
    """
    $1200 due in 60 days, fortnightly cycle, nothing saved yet
    Expected: $300 per cycle over 4 cycles
    """
    make_settings()
    make_obligation()

    item = _recalculate(client)["forecast"]["obligations"][0]

    assert item["amount_needed_cents"] == 120000
    assert item["cycles_remaining"] == 4
    assert item["recommended_contribution_cents"] == 30000


@pytest.mark.integration
def test_fully_funded_saver(client: TestClient, make_obligation, make_settings):
    """
    Same bill after setting the fund balance to $1200
    Expected: nothing more to set aside, celebration next action
    """
    make_settings()
    make_obligation()

    response = client.put("/v1/fund-balances/ob-car", json={"balance_cents": 120000})
    assert response.status_code == 200

    data = _recalculate(client)
    item = data["forecast"]["obligations"][0]

    assert item["amount_needed_cents"] == 0
    assert item["recommended_contribution_cents"] == 0
    assert data["forecast"]["is_fully_funded"] is True
    assert data["snapshot"]["next_action_description"] == "You're fully covered!"


@pytest.mark.integration
def test_capped_saver_two_bills(client: TestClient, make_obligation, make_settings):
    """
    Two $300/cycle recommendations against a $500 cap
    Expected: $600 total reported, over cap by $100, recommendations unchanged
    """
    make_settings(max_contribution_per_cycle_cents=50000)
    make_obligation("ob-insurance", name="Insurance")
    make_obligation("ob-rego", name="Registration")

    forecast = _recalculate(client)["forecast"]

    assert forecast["total_recommended_cents"] == 60000
    assert forecast["over_cap"] is True
    assert forecast["shortfall_cents"] == 10000
    assert [o["recommended_contribution_cents"] for o in forecast["obligations"]] == [30000, 30000]


@pytest.mark.integration
def test_recalculation_is_repeatable(client: TestClient, make_obligation, make_settings, make_contribution):
    """Running the engine twice on unchanged data gives the same forecast"""
    make_settings(max_contribution_per_cycle_cents=50000)
    make_obligation("ob-insurance", name="Insurance")
    make_obligation("ob-rego", name="Registration", amount_cents=45000, next_due_date=date(2025, 2, 10))
    make_contribution("ob-rego", 5000)

    first = _recalculate(client)["forecast"]
    second = _recalculate(client)["forecast"]

    assert first == second


@pytest.mark.integration
def test_month_end_rent(client: TestClient, make_obligation, make_income):
    """
    Monthly earner, rent anchored on Jan 31
    Expected: February rent falls on the 28th, not March 3rd
    """
    make_income("monthly", next_expected_date=date(2025, 2, 28))
    make_obligation(
        "ob-rent",
        name="Rent",
        kind="recurring",
        frequency="monthly",
        amount_cents=180000,
        next_due_date=date(2025, 1, 31),
    )

    data = _recalculate(client, params={"as_of": "2025-02-01"})
    item = data["forecast"]["obligations"][0]

    assert data["forecast"]["cycle"]["cycle_type"] == "monthly"
    assert item["next_due_date"] == "2025-02-28"
    assert item["recommended_contribution_cents"] == 180000


@pytest.mark.integration
def test_what_if_then_commit(client: TestClient, make_obligation, make_settings):
    """
    Preview dropping the gym and adding a laptop, then commit it
    Expected: preview and committed forecasts agree; history holds one snapshot
    """
    make_settings()
    make_obligation()
    make_obligation(
        "ob-gym",
        name="Gym",
        kind="recurring",
        frequency="fortnightly",
        amount_cents=4000,
        next_due_date=date(2025, 1, 10),
    )
    body = {
        "toggled_off_ids": ["ob-gym"],
        "hypotheticals": [{"name": "Laptop", "amount_cents": 80000, "next_due_date": "2025-03-02"}],
    }

    preview = client.post("/v1/engine/scenario", params=AS_OF, json=body).json()
    assert preview["change_summary"] == "1 expense toggled off, 1 hypothetical added"
    assert client.get("/v1/engine/snapshots").json()["snapshots"] == []

    committed = client.post("/v1/engine/scenario/commit", params=AS_OF, json=body).json()

    assert committed["forecast"]["total_recommended_cents"] == preview["forecast"]["total_recommended_cents"]
    assert committed["forecast"]["total_recommended_cents"] == 50000
    assert len(client.get("/v1/engine/snapshots").json()["snapshots"]) == 1
