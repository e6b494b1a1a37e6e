from workforce.tasks.base import AgentKind, AgentResult, Artifact, Task
from workforce.tasks.synthesizer import ResultSynthesizer


def test_single_agent_uses_its_summary():
    task = Task.create("summarize", task_id="task-1")
    results = {AgentKind.ANALYSIS: AgentResult.complete("long output", summary="short")}

    outcome = ResultSynthesizer().synthesize(results, task)

    assert outcome.summary == "short"
    assert outcome.task_id == "task-1"
    assert outcome.task == "summarize"


def test_single_agent_summary_falls_back():
    task = Task.create("x")
    synthesizer = ResultSynthesizer()

    assert synthesizer.synthesize({AgentKind.CODE: AgentResult.complete("code")}, task).summary == "code"
    assert synthesizer.synthesize({AgentKind.CODE: AgentResult.complete("")}, task).summary == "Task completed"


def test_multiple_agents_ordered_with_failures_as_data():
    task = Task.create("build and analyze")
    results = {
        AgentKind.ANALYSIS: AgentResult.complete("a", artifacts=[Artifact(type="chart")]),
        AgentKind.CODE: AgentResult.complete(
            "c", artifacts=[Artifact(type="code", fields={"language": "python"})]
        ),
        AgentKind.DOCUMENT: AgentResult.failure("All providers failed"),
    }

    outcome = ResultSynthesizer().synthesize(results, task)

    assert list(outcome.agent_results) == [AgentKind.CODE, AgentKind.DOCUMENT, AgentKind.ANALYSIS]
    assert outcome.summary == (
        "Task completed with 3 agents:\n"
        "  - developer: complete\n"
        "  - document: error\n"
        "  - multimodal: complete"
    )
    assert [artifact.type for artifact in outcome.artifacts] == ["code", "chart"]
    assert outcome.failed_agents == [AgentKind.DOCUMENT]


def test_to_dict_shape():
    task = Task.create("x", task_id="task-9")
    results = {AgentKind.CODE: AgentResult.complete("out", artifacts=[Artifact("code", {"content": "print()"})])}

    data = ResultSynthesizer().synthesize(results, task).to_dict()

    assert data["taskId"] == "task-9"
    assert data["agentResults"]["developer"]["status"] == "complete"
    assert data["artifacts"] == [{"type": "code", "content": "print()"}]
    assert isinstance(data["timestamp"], int)
