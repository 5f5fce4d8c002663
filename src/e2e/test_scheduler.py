from clear_editor import config as CFG
from clear_editor.inference import InferenceError
from clear_editor.models import GenerationState, Thought
from clear_editor.scheduler import GenerationScheduler

LONG = "I walked home. I felt relieved. Then I slept."


def _scheduler(loop, service, display, text=LONG):
    box = {"text": text}
    got = []
    sch = GenerationScheduler(
        loop, service,
        read_text=lambda: box["text"],
        on_thought=got.append,
        display=display,
        debounce=2.5,
        min_length=20,
    )
    return sch, box, got


def test_short_text_never_goes_in_flight(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display, text="too short")
    sch.notify_input()
    assert sch.state is GenerationState.DEBOUNCING
    loop.advance(10)
    assert sch.state is GenerationState.IDLE
    assert service.futures == []
    assert sch.trigger() is False


def test_length_gate_uses_trimmed_text(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display, text="   short words   \n\n\n     ")
    assert sch.trigger() is False


def test_debounce_coalesces_bursts(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display)
    sch.notify_input()
    loop.advance(1.0)
    sch.notify_input()
    loop.advance(2.0)
    assert service.futures == []
    loop.advance(0.5)
    assert len(service.futures) == 1
    assert sch.state is GenerationState.IN_FLIGHT


def test_request_carries_system_prompt_and_current_text(loop, service, display):
    sch, box, _ = _scheduler(loop, service, display)
    box["text"] = "  " + LONG + " Edited.  "
    sch.trigger()
    system, user = service.messages[0]
    assert system.role == "system" and system.content == CFG.SYSTEM_PROMPT
    assert user.role == "user" and user.content == LONG + " Edited."
    assert display.loading[-1] == (True, "Thinking...")
    assert display.errors[-1] is None


def test_manual_trigger_while_in_flight_is_a_no_op(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display)
    assert sch.trigger() is True
    assert sch.trigger() is False
    assert sch.state is GenerationState.IN_FLIGHT
    assert len(service.futures) == 1


def test_timer_firing_while_in_flight_does_not_start_another(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display)
    sch.trigger()
    sch.notify_input()
    loop.advance(5)
    assert len(service.futures) == 1
    assert sch.state is GenerationState.IN_FLIGHT


def test_manual_trigger_cancels_pending_debounce(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display)
    sch.notify_input()
    sch.trigger()
    service.futures[0].set_result('{"question": "Q?"}')
    loop.advance(5)
    assert len(service.futures) == 1


def test_completion_applies_thought_and_returns_to_idle(loop, service, display):
    sch, _, got = _scheduler(loop, service, display)
    sch.trigger()
    service.futures[0].set_result('```json\n{"question":"Why?","sentences":["a"]}\n```')
    loop.run_ready()
    assert got == [Thought("Why?", ["a"])]
    assert sch.state is GenerationState.IDLE
    assert display.loading[-1][0] is False


def test_empty_question_gets_fallback(loop, service, display):
    sch, _, got = _scheduler(loop, service, display)
    sch.trigger()
    service.futures[0].set_result('{"sentences": ["I felt relieved."]}')
    loop.run_ready()
    assert got[0].question == CFG.FALLBACK_QUESTION
    assert got[0].sentences == ["I felt relieved."]


def test_failure_surfaces_error_and_does_not_retry(loop, service, display):
    sch, _, got = _scheduler(loop, service, display)
    sch.trigger()
    service.futures[0].set_exception(InferenceError("Model request failed: boom"))
    loop.run_ready()
    assert display.errors[-1] == "Model request failed: boom"
    assert sch.state is GenerationState.IDLE
    assert got == []
    loop.advance(30)
    assert len(service.futures) == 1
    assert sch.trigger() is True


def test_blank_error_message_gets_generic_text(loop, service, display):
    sch, _, _ = _scheduler(loop, service, display)
    sch.trigger()
    service.futures[0].set_exception(RuntimeError())
    loop.run_ready()
    assert display.errors[-1] == CFG.GENERIC_ERROR


def test_service_not_ready(loop, display):
    from conftest import FakeService
    service = FakeService(ready=False)
    sch, _, _ = _scheduler(loop, service, display)
    assert sch.trigger() is False
    assert sch.state is GenerationState.IDLE


def test_submit_raising_resets_state(loop, display):
    class Broken:
        ready = True

        def submit(self, messages, *, temperature, max_tokens):
            raise RuntimeError("cannot schedule new futures after shutdown")

    sch, _, _ = _scheduler(loop, Broken(), display)
    assert sch.trigger() is False
    assert sch.state is GenerationState.IDLE
    assert display.errors[-1] == "cannot schedule new futures after shutdown"
