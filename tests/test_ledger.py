"""
Integration tests for categories, budgets, expenses and the spending summary.
"""
from datetime import date, timedelta
from decimal import Decimal

from receiptledger.models import CategoryBudgetModel, ExpenseCategoryModel, ExpenseModel
from receiptledger.pipeline.seeding import BUSINESS_CATEGORIES, PERSONAL_CATEGORIES

THIS_MONTH = date.today().replace(day=1)


def _create_category(client, profile_id, name, **extra):
    return client.post("/api/categories", json={"profileId": profile_id, "name": name, **extra})


def _create_expense(client, profile_id, description, amount, **extra):
    return client.post(
        "/api/expenses",
        json={"profileId": profile_id, "description": description, "amount": amount, **extra},
    )


class TestCategories:
    def test_create_with_budget(self, client, profile):
        resp = _create_category(client, profile.id, "Fuel", color="#F7DC6F", budgetAmount=125)
        assert resp.status_code == 201
        category = resp.json()["category"]
        assert category["name"] == "Fuel"
        assert category["color"] == "#F7DC6F"
        assert category["category_budgets"] == [
            {
                "category_id": category["id"],
                "budget_amount": 125.0,
                "month_year": THIS_MONTH.isoformat(),
            }
        ]

    def test_duplicate_name(self, client, categories, profile):
        resp = _create_category(client, profile.id, "Groceries")
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    def test_list_is_sorted_and_scoped(self, client, categories, profile):
        resp = client.get("/api/categories", params={"profileId": profile.id})
        assert resp.status_code == 200
        names = [c["name"] for c in resp.json()["categories"]]
        assert names == ["Gas & Fuel", "Groceries", "Household"]

    def test_update_upserts_budget(self, client, db, categories, profile):
        category_id = categories["Groceries"]
        for amount in (300, 450.5):
            resp = client.put(
                "/api/categories",
                json={"id": category_id, "profileId": profile.id, "budgetAmount": amount},
            )
            assert resp.status_code == 200

        budgets = resp.json()["category"]["category_budgets"]
        assert [b["budget_amount"] for b in budgets] == [450.5]
        assert db.query(CategoryBudgetModel).count() == 1

    def test_rename(self, client, categories, profile):
        category_id = categories["Household"]
        resp = client.put(
            "/api/categories",
            json={"id": category_id, "profileId": profile.id, "name": "Home Goods"},
        )
        assert resp.json()["category"]["name"] == "Home Goods"

        resp = client.put(
            "/api/categories",
            json={"id": category_id, "profileId": profile.id, "name": "Groceries"},
        )
        assert resp.status_code == 409

    def test_delete_unused(self, client, db, categories, profile):
        category_id = categories["Household"]
        client.put(
            "/api/categories",
            json={"id": category_id, "profileId": profile.id, "budgetAmount": 50},
        )

        resp = client.delete("/api/categories", params={"id": category_id, "profileId": profile.id})
        assert resp.status_code == 200
        assert db.query(ExpenseCategoryModel).filter_by(id=category_id).count() == 0
        assert db.query(CategoryBudgetModel).count() == 0

    def test_delete_referenced_category_conflicts(self, client, db, categories, profile):
        _create_expense(client, profile.id, "Milk", 3.98, category="Groceries")

        resp = client.delete(
            "/api/categories", params={"id": categories["Groceries"], "profileId": profile.id}
        )
        assert resp.status_code == 409
        assert db.query(ExpenseCategoryModel).filter_by(id=categories["Groceries"]).count() == 1

        expenses = client.get("/api/expenses", params={"profileId": profile.id}).json()["expenses"]
        assert [e["category_name"] for e in expenses] == ["Groceries"]

    def test_delete_unknown(self, client, profile):
        resp = client.delete("/api/categories", params={"id": "missing", "profileId": profile.id})
        assert resp.status_code == 404

    def test_seed_personal_is_idempotent(self, client, db, categories, profile):
        budgeted = len([s for s in PERSONAL_CATEGORIES if s.budget > 0])

        resp = client.post("/api/categories/bulk-insert", json={"profileId": profile.id})
        assert resp.status_code == 200
        # Groceries and Household already exist
        assert resp.json()["categoriesCreated"] == len(PERSONAL_CATEGORIES) - 2
        assert resp.json()["budgetsCreated"] == budgeted

        resp = client.post("/api/categories/bulk-insert", json={"profileId": profile.id})
        assert resp.json()["categoriesCreated"] == 0
        assert db.query(ExpenseCategoryModel).count() == len(PERSONAL_CATEGORIES) + 1
        assert db.query(CategoryBudgetModel).count() == budgeted

    def test_seed_business(self, client, db, profile):
        resp = client.post("/api/categories/bulk-insert-business", json={"profileId": profile.id})
        assert resp.json()["categoriesCreated"] == len(BUSINESS_CATEGORIES)
        rent = db.query(ExpenseCategoryModel).filter_by(name="B - Rent").one()
        budget = db.query(CategoryBudgetModel).filter_by(category_id=rent.id).one()
        assert budget.month_year == THIS_MONTH
        assert float(budget.budget_amount) == 650.0

    def test_seed_unknown_profile(self, client):
        resp = client.post("/api/categories/bulk-insert", json={"profileId": "missing"})
        assert resp.status_code == 404


class TestBudgets:
    def test_upsert_and_list_by_month(self, client, categories, profile):
        payload = {
            "profileId": profile.id,
            "categoryId": categories["Groceries"],
            "budgetAmount": "300.50",
            "month": "2024-05-17",
        }
        resp = client.put("/api/budgets", json=payload)
        assert resp.status_code == 200
        assert resp.json()["budget"]["month_year"] == "2024-05-01"

        client.put("/api/budgets", json={**payload, "budgetAmount": 320})
        resp = client.get("/api/budgets", params={"profileId": profile.id, "month": "2024-05"})
        assert [b["budget_amount"] for b in resp.json()["budgets"]] == [320.0]

        resp = client.get("/api/budgets", params={"profileId": profile.id, "month": "2024-06"})
        assert resp.json()["budgets"] == []

    def test_unknown_category(self, client, profile):
        resp = client.put(
            "/api/budgets",
            json={"profileId": profile.id, "categoryId": "missing", "budgetAmount": 10},
        )
        assert resp.status_code == 404

    def test_bad_month(self, client, profile):
        resp = client.get("/api/budgets", params={"profileId": profile.id, "month": "May"})
        assert resp.status_code == 400


class TestExpenses:
    def test_create(self, client, categories, profile):
        resp = _create_expense(
            client, profile.id, "Weekly shop", "$54.20", category="Groceries", date="2024-05-03"
        )
        assert resp.status_code == 201
        expense = resp.json()["expense"]
        assert expense["amount"] == 54.2
        assert expense["category_id"] == categories["Groceries"]
        assert expense["category_name"] == "Groceries"
        assert expense["expense_date"] == "2024-05-03"
        assert expense["source"] == "manual"
        assert expense["expense_type"] == "personal"

    def test_unknown_category_is_left_empty(self, client, categories, profile):
        expense = _create_expense(client, profile.id, "Chew toy", 9.99, category="Pets").json()["expense"]
        assert expense["category_id"] is None
        assert expense["expense_date"] == date.today().isoformat()

    def test_business_expense(self, client, profile):
        expense = _create_expense(
            client, profile.id, "Printer ink", 30, businessClass="B - Office"
        ).json()["expense"]
        assert expense["expense_type"] == "business"

    def test_list_newest_first_with_limit_and_month(self, client, profile):
        _create_expense(client, profile.id, "April", 1, date="2024-04-10")
        _create_expense(client, profile.id, "May early", 2, date="2024-05-01")
        _create_expense(client, profile.id, "May late", 3, date="2024-05-30")

        resp = client.get("/api/expenses", params={"profileId": profile.id})
        assert [e["description"] for e in resp.json()["expenses"]] == ["May late", "May early", "April"]

        resp = client.get("/api/expenses", params={"profileId": profile.id, "limit": 1})
        assert len(resp.json()["expenses"]) == 1

        resp = client.get("/api/expenses", params={"profileId": profile.id, "month": "2024-05"})
        assert len(resp.json()["expenses"]) == 2

    def test_update(self, client, categories, profile):
        expense = _create_expense(client, profile.id, "Shop", 10, category="Groceries").json()["expense"]

        resp = client.put(
            "/api/expenses",
            json={
                "id": expense["id"],
                "profileId": profile.id,
                "amount": 12.5,
                "category": "Household",
                "note": "paper towels",
            },
        )
        assert resp.status_code == 200
        updated = resp.json()["expense"]
        assert updated["amount"] == 12.5
        assert updated["category_name"] == "Household"
        assert updated["note"] == "paper towels"
        assert updated["description"] == "Shop"

    def test_update_unknown(self, client, profile):
        resp = client.put("/api/expenses", json={"id": "missing", "profileId": profile.id})
        assert resp.status_code == 404

    def test_delete(self, client, profile):
        expense = _create_expense(client, profile.id, "Coffee", 4).json()["expense"]

        resp = client.delete("/api/expenses", params={"id": expense["id"], "profileId": profile.id})
        assert resp.status_code == 200
        assert client.get("/api/expenses", params={"profileId": profile.id}).json()["expenses"] == []

    def _approve_split(self, client, make_job, profile):
        items = [
            {"description": "Milk", "amount": 3.98, "category": "Groceries"},
            {"description": "Detergent", "amount": 8.47, "category": "Household"},
        ]
        job = make_job({"lineItems": items})
        return client.post(
            "/api/receipts/approve",
            json={"jobId": job.id, "profileId": profile.id, "lineItems": items, "isSplitTransaction": True},
        ).json()

    def _split_amounts(self, db, parent_id):
        parent = db.query(ExpenseModel).filter_by(id=parent_id).one()
        children = db.query(ExpenseModel).filter_by(parent_transaction_id=parent_id).all()
        return parent.amount, sum(c.amount for c in children)

    def test_split_rows_cannot_be_deleted(self, client, db, categories, make_job, profile):
        body = self._approve_split(client, make_job, profile)
        parent_id = body["parentTransaction"]["id"]

        resp = client.delete("/api/expenses", params={"id": parent_id, "profileId": profile.id})
        assert resp.status_code == 409

        child_id = body["childTransactions"][0]["id"]
        resp = client.delete("/api/expenses", params={"id": child_id, "profileId": profile.id})
        assert resp.status_code == 409
        assert resp.json()["error"] == "Cannot delete a line item of a split transaction"

        parent_amount, children_total = self._split_amounts(db, parent_id)
        assert parent_amount == children_total == Decimal("12.45")

    def test_split_amounts_cannot_be_edited(self, client, db, categories, make_job, profile):
        body = self._approve_split(client, make_job, profile)
        parent_id = body["parentTransaction"]["id"]
        child_id = body["childTransactions"][1]["id"]

        for expense_id in (child_id, parent_id):
            resp = client.put(
                "/api/expenses",
                json={"id": expense_id, "profileId": profile.id, "amount": 100},
            )
            assert resp.status_code == 409

        parent_amount, children_total = self._split_amounts(db, parent_id)
        assert parent_amount == children_total == Decimal("12.45")

    def test_split_line_item_other_fields_can_be_edited(self, client, categories, make_job, profile):
        body = self._approve_split(client, make_job, profile)
        child = body["childTransactions"][1]

        resp = client.put(
            "/api/expenses",
            json={
                "id": child["id"],
                "profileId": profile.id,
                "amount": child["amount"],
                "note": "laundry",
                "category": "Groceries",
            },
        )
        assert resp.status_code == 200
        assert resp.json()["expense"]["note"] == "laundry"
        assert resp.json()["expense"]["category_name"] == "Groceries"


class TestSummary:
    def test_summary_excludes_split_parents(self, client, categories, make_job, profile):
        client.put(
            "/api/budgets",
            json={"profileId": profile.id, "categoryId": categories["Groceries"], "budgetAmount": 300},
        )
        today = date.today().isoformat()
        _create_expense(client, profile.id, "Bread", 10, category="Groceries", date=today)
        _create_expense(client, profile.id, "Stamps", 5, date=today)
        _create_expense(
            client, profile.id, "Old", 100, date=(date.today() - timedelta(days=60)).isoformat()
        )
        items = [
            {"description": "Milk", "amount": 3.98, "category": "Groceries"},
            {"description": "Detergent", "amount": 8.47, "category": "Household"},
        ]
        job = make_job({"lineItems": items})
        client.post(
            "/api/receipts/approve",
            json={
                "jobId": job.id,
                "profileId": profile.id,
                "date": today,
                "lineItems": items,
                "isSplitTransaction": True,
            },
        )

        resp = client.get("/api/expenses/summary", params={"profileId": profile.id})
        assert resp.status_code == 200
        summary = resp.json()
        assert summary["month"] == THIS_MONTH.strftime("%Y-%m")
        assert summary["totalExpenses"] == 127.45
        assert summary["monthlyTotal"] == 27.45
        assert summary["recentCount"] == 4

        by_name = {c["name"]: c for c in summary["categories"]}
        assert by_name["Groceries"]["spent"] == 13.98
        assert by_name["Groceries"]["budgetAmount"] == 300.0
        assert by_name["Household"]["spent"] == 8.47
        assert by_name["Gas & Fuel"]["spent"] == 0.0
        assert by_name["Gas & Fuel"]["budgetAmount"] is None
        assert by_name["Uncategorized"]["spent"] == 5.0
        assert by_name["Uncategorized"]["categoryId"] is None

    def test_summary_for_empty_month(self, client, profile):
        resp = client.get("/api/expenses/summary", params={"profileId": profile.id, "month": "2020-01"})
        summary = resp.json()
        assert summary["month"] == "2020-01"
        assert summary["monthlyTotal"] == 0.0
        assert summary["categories"] == []
