"""Tests for the HTTP surface."""

from conftest import api_node, edge, output_node, start_node


def create_workflow(client, **overrides):
    payload = {
        "name": "Customers",
        "description": "List customers",
        "nodes": [start_node("s"), api_node("a"), output_node("o")],
        "edges": [edge("s", "a"), edge("a", "o")]
    }
    payload.update(overrides)
    response = client.post("/api/workflows", json=payload)
    assert response.status_code == 201
    return response.json()


def log_payload(log_id="log-1", workflow_id="wf-1", **overrides):
    payload = {
        "id": log_id,
        "workflowId": workflow_id,
        "workflowName": "Customers",
        "timestamp": "2024-01-01T00:00:00Z",
        "status": "success",
        "executionTime": 25,
        "nodeResults": [{"nodeId": "s", "success": True, "timestamp": "2024-01-01T00:00:00Z"}]
    }
    payload.update(overrides)
    return payload


class TestServiceEndpoints:
    """Test cases for root and health endpoints."""

    def test_root_and_health(self, app_client):
        assert "is running" in app_client.get("/").json()["message"]

        health = app_client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "healthy"

    def test_readiness_checks_database(self, app_client):
        response = app_client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_middleware_headers(self, app_client):
        response = app_client.get("/health")
        assert "X-Request-ID" in response.headers
        assert response.headers["X-Response-Time"].endswith("s")


class TestWorkflowEndpoints:
    """Test cases for workflow CRUD."""

    def test_create_returns_camel_case_workflow(self, app_client):
        workflow = create_workflow(app_client)

        assert workflow["id"]
        assert workflow["name"] == "Customers"
        assert "createdAt" in workflow and "updatedAt" in workflow
        assert workflow["nodes"][1]["data"]["apiRoute"]["url"] == "https://api.example.com/data"

    def test_create_requires_name(self, app_client):
        response = app_client.post("/api/workflows", json={"description": "no name"})
        assert response.status_code in (400, 422)

        response = app_client.post("/api/workflows", json={"name": ""})
        assert response.status_code in (400, 422)

    def test_list_and_get(self, app_client):
        created = create_workflow(app_client)

        listed = app_client.get("/api/workflows").json()
        assert [w["id"] for w in listed] == [created["id"]]

        fetched = app_client.get(f"/api/workflows/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["description"] == "List customers"

    def test_get_missing_is_404(self, app_client):
        response = app_client.get("/api/workflows/missing")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "WorkflowNotFound"

    def test_update(self, app_client):
        created = create_workflow(app_client)

        response = app_client.put(f"/api/workflows/{created['id']}", json={"name": "Renamed"})

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert len(response.json()["nodes"]) == 3

    def test_update_rejects_blank_name(self, app_client):
        created = create_workflow(app_client)
        response = app_client.put(f"/api/workflows/{created['id']}", json={"name": " "})
        assert response.status_code == 400

    def test_update_missing_is_404(self, app_client):
        assert app_client.put("/api/workflows/missing", json={"name": "x"}).status_code == 404

    def test_delete(self, app_client):
        created = create_workflow(app_client)

        response = app_client.delete(f"/api/workflows/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True}

        assert app_client.get(f"/api/workflows/{created['id']}").status_code == 404
        assert app_client.delete(f"/api/workflows/{created['id']}").status_code == 404


class TestExecuteEndpoint:
    """Test cases for running a stored workflow."""

    def test_execute_returns_visible_results(self, app_client, api_payload):
        created = create_workflow(app_client)

        response = app_client.post(f"/api/workflows/{created['id']}/execute")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["workflowId"] == created["id"]
        assert body["workflowName"] == "Customers"
        assert [r["nodeId"] for r in body["results"]] == ["s", "a", "o"]
        assert body["results"][2]["data"] == api_payload

    def test_execute_records_one_log_entry(self, app_client):
        created = create_workflow(app_client)
        app_client.post(f"/api/workflows/{created['id']}/execute")

        logs = app_client.get("/api/execution-logs", params={"workflowId": created["id"]}).json()

        assert len(logs) == 1
        assert logs[0]["status"] == "success"
        assert logs[0]["workflowName"] == "Customers"
        assert logs[0]["executionTime"] >= 0
        assert [r["nodeId"] for r in logs[0]["nodeResults"]] == ["s", "a", "o"]
        assert "data" not in logs[0]["nodeResults"][0]

    def test_execute_unknown_workflow_is_404(self, app_client):
        assert app_client.post("/api/workflows/missing/execute").status_code == 404

    def test_execute_without_nodes_is_400(self, app_client):
        created = create_workflow(app_client, nodes=[], edges=[])

        response = app_client.post(f"/api/workflows/{created['id']}/execute")

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "No start node found in the workflow"

    def test_node_failure_is_reported_in_results(self, app_client):
        created = create_workflow(
            app_client,
            nodes=[start_node("s"), api_node("a", provider="stripe"), output_node("o")]
        )

        body = app_client.post(f"/api/workflows/{created['id']}/execute").json()

        # The testing preset carries no Stripe key
        assert [(r["nodeId"], r["success"]) for r in body["results"]] == [("s", True), ("a", False)]
        assert body["results"][1]["error"] == "Stripe API key is not configured"


class TestExecutionLogEndpoints:
    """Test cases for execution log endpoints."""

    def test_post_and_get(self, app_client):
        response = app_client.post("/api/execution-logs", json=log_payload())
        assert response.status_code == 200
        assert response.json() == {"success": True}

        entry = app_client.get("/api/execution-logs/log-1")
        assert entry.status_code == 200
        assert entry.json()["workflowId"] == "wf-1"

    def test_post_requires_identifying_fields(self, app_client):
        for field in ("id", "workflowId", "timestamp"):
            payload = log_payload()
            del payload[field]
            response = app_client.post("/api/execution-logs", json=payload)
            assert response.status_code == 400
            assert response.json()["detail"]["message"] == "Invalid log entry"

    def test_post_rejects_malformed_entry(self, app_client):
        response = app_client.post("/api/execution-logs", json=log_payload(status="maybe"))
        assert response.status_code == 400

    def test_list_all_and_by_workflow(self, app_client):
        app_client.post("/api/execution-logs", json=log_payload("log-1", "wf-a", timestamp="2024-01-01T00:00:01Z"))
        app_client.post("/api/execution-logs", json=log_payload("log-2", "wf-b", timestamp="2024-01-01T00:00:02Z"))

        assert [e["id"] for e in app_client.get("/api/execution-logs").json()] == ["log-2", "log-1"]
        by_workflow = app_client.get("/api/execution-logs", params={"workflowId": "wf-a"}).json()
        assert [e["id"] for e in by_workflow] == ["log-1"]

    def test_get_missing_is_404(self, app_client):
        response = app_client.get("/api/execution-logs/missing")
        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "Execution log not found"

    def test_delete_requires_workflow_id(self, app_client):
        response = app_client.delete("/api/execution-logs")
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Workflow ID is required"

    def test_delete_by_workflow(self, app_client):
        app_client.post("/api/execution-logs", json=log_payload("log-1", "wf-a"))
        app_client.post("/api/execution-logs", json=log_payload("log-2", "wf-b"))

        response = app_client.delete("/api/execution-logs", params={"workflowId": "wf-a"})

        assert response.status_code == 200
        assert [e["id"] for e in app_client.get("/api/execution-logs").json()] == ["log-2"]

    def test_deleting_workflow_removes_its_logs(self, app_client):
        created = create_workflow(app_client)
        app_client.post(f"/api/workflows/{created['id']}/execute")

        app_client.delete(f"/api/workflows/{created['id']}")

        assert app_client.get("/api/execution-logs", params={"workflowId": created["id"]}).json() == []
