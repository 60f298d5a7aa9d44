"""Step definitions exercising the scenario world."""

import logging
from contextlib import ExitStack

from behave import given, then, when
from behave.runner import Context
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from features.steps.http_server import simple_http_server
from scenarist.constants import ExecutionMode

logger = logging.getLogger(__name__)


@given("a local JSON endpoint")
def step_local_endpoint(context: Context) -> None:
    stack = ExitStack()
    context.endpoint = stack.enter_context(simple_http_server())
    context.add_cleanup(stack.close)


@when('I send a GET request to "{path}"')
def step_send_get(context: Context, path: str) -> None:
    context.world.logger.info("GET %s%s", context.endpoint, path)
    context.response = context.world.api.get(f"{context.endpoint}{path}")


@then("the response status is {status:d}")
def step_response_status(context: Context, status: int) -> None:
    assert context.response.status_code == status, context.response.text


@then('the request carried the header "{name}" with value "{value}"')
def step_request_header(context: Context, name: str, value: str) -> None:
    headers = context.response.json()["headers"]
    assert headers.get(name.lower()) == value, headers


@then("the world runs in {mode} mode without a browser")
def step_world_mode_api(context: Context, mode: str) -> None:
    assert context.world.mode == ExecutionMode(mode)
    assert context.world.page is None
    assert context.world.browser is None


@when('I open a page showing "{text}"')
def step_open_page(context: Context, text: str) -> None:
    context.world.page.set_content(f"<h1>{text}</h1>")


@then('the heading reads "{text}"')
def step_heading_reads(context: Context, text: str) -> None:
    assert context.world.page.inner_text("h1") == text


@then("the scenario timeout policy is {timeout_ms:d} milliseconds")
def step_timeout_policy(context: Context, timeout_ms: int) -> None:
    assert context.world.timeout_ms == timeout_ms


@then("the API session timeout is {timeout_ms:d} milliseconds")
def step_api_timeout(context: Context, timeout_ms: int) -> None:
    assert context.world.api.timeout_ms == timeout_ms


@then("waiting for a missing element gives up after {timeout_ms:d} milliseconds")
def step_page_wait_times_out(context: Context, timeout_ms: int) -> None:
    try:
        context.world.page.wait_for_selector("#never-rendered")
    except PlaywrightTimeoutError as e:
        assert f"Timeout {timeout_ms}ms exceeded" in str(e), str(e)
    else:
        raise AssertionError("wait_for_selector found an element that was never rendered")
