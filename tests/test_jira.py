import pytest

from bpcli.jira import (
    CUSTOM_FIELD_CLUSTER_ID,
    JIRA_OHSS_PROJECT_KEY,
    IssueServiceDecorator,
    OHSSIssue,
    OHSSService,
)

TEST_OHSS_ID = "OHSS-1000"


class FakeIssueService:
    def __init__(self, issue=None):
        self.issue = issue
        self.calls = []

    def get(self, issue_id, options):
        self.calls.append(("get", issue_id, options))
        return self.issue

    def create(self, issue):
        self.calls.append(("create", issue))
        return {"id": "1", "key": "OHSS-1"}

    def update(self, issue):
        self.calls.append(("update", issue))
        return issue

    def get_transitions(self, issue_id):
        self.calls.append(("get_transitions", issue_id))
        return [{"id": "11", "name": "Done"}]

    def do_transition(self, ticket_id, transition_id):
        self.calls.append(("do_transition", ticket_id, transition_id))
        return 204


def ohss_issue(project_key=JIRA_OHSS_PROJECT_KEY):
    return {"id": TEST_OHSS_ID, "fields": {"project": {"key": project_key}}}


def test_returns_one_issue():
    service = FakeIssueService(ohss_issue())
    issue = OHSSService(service).get_issue(TEST_OHSS_ID)
    assert issue.id == TEST_OHSS_ID
    assert issue.project_key == JIRA_OHSS_PROJECT_KEY
    assert service.calls == [("get", TEST_OHSS_ID, None)]


def test_issue_not_in_ohss_project():
    service = FakeIssueService(ohss_issue("NON-OHSS"))
    with pytest.raises(ValueError) as info:
        OHSSService(service).get_issue(TEST_OHSS_ID)
    assert str(info.value) == "issue OHSS-1000 is not belongs to OHSS project"


def test_empty_issue():
    service = FakeIssueService(None)
    with pytest.raises(ValueError) as info:
        OHSSService(service).get_issue(TEST_OHSS_ID)
    assert str(info.value) == "no matching issue for issueID:OHSS-1000"


def test_empty_issue_id():
    service = FakeIssueService(ohss_issue())
    with pytest.raises(ValueError, match="empty issue Id"):
        OHSSService(service).get_issue("")
    assert service.calls == []


def test_format_issue_fields():
    issue = {
        "id": "10001",
        "key": "OHSS-42",
        "self": "https://issues.example.com/rest/api/2/issue/10001",
        "fields": {
            "project": {"key": JIRA_OHSS_PROJECT_KEY},
            "summary": "Cluster is down",
            CUSTOM_FIELD_CLUSTER_ID: "abc123",
        },
    }
    formatted = OHSSService(FakeIssueService()).format_issue(issue)
    assert formatted == OHSSIssue(
        id="10001",
        key="OHSS-42",
        title="Cluster is down",
        project_key=JIRA_OHSS_PROJECT_KEY,
        web_url="https://issues.example.com/browse/OHSS-42",
        cluster_id="abc123",
    )


def test_format_issue_without_fields_or_self():
    formatted = OHSSService(FakeIssueService()).format_issue({"id": "1", "key": "OHSS-1"})
    assert formatted == OHSSIssue(id="1", key="OHSS-1")


def test_decorator_delegates_to_getter():
    fake = FakeIssueService(ohss_issue())
    decorator = IssueServiceDecorator(getter=lambda: fake)
    assert decorator.get(TEST_OHSS_ID, None) == ohss_issue()
    assert decorator.create({"fields": {}}) == {"id": "1", "key": "OHSS-1"}
    assert decorator.update({"key": "OHSS-1"}) == {"key": "OHSS-1"}
    assert decorator.get_transitions("OHSS-1") == [{"id": "11", "name": "Done"}]
    assert decorator.do_transition("OHSS-1", "11") == 204
    assert [call[0] for call in fake.calls] == [
        "get",
        "create",
        "update",
        "get_transitions",
        "do_transition",
    ]


def test_decorator_getter_error_propagates():
    def failing():
        raise RuntimeError("no service")

    decorator = IssueServiceDecorator(getter=failing)
    with pytest.raises(RuntimeError, match="no service"):
        decorator.get_transitions("OHSS-1")


def test_decorator_without_token_raises():
    decorator = IssueServiceDecorator(base_url="https://issues.example.com", token="")
    with pytest.raises(ValueError, match="JIRA token is not defined"):
        decorator.get(TEST_OHSS_ID, None)