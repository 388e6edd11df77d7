import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from loguru import logger
from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from pocketledger.errors import MalformedOperationError
from pocketledger.ledger.categories import infer_category
from pocketledger.llm.prompts import TOOLS, build_summary_prompt, build_system_prompt
from pocketledger.models.schemas import (
    Comparison,
    FreeTextReply,
    Operation,
    Query,
    RegisterMany,
    RegisterOne,
    UserContext,
)

COULD_NOT_PROCESS = "😔 Sorry, I couldn't process that request. Could you rephrase it?"
COULD_NOT_UNDERSTAND = "Sorry, I couldn't understand your message."
LLM_FAILURE = "😔 Something went wrong. Please try again."


def _parse_day(value) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Ignoring unparseable date from model: {}", value)
        return None


def _text(value) -> str:
    """Model-supplied free text; numbers are accepted as their string form."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip()
    raise MalformedOperationError(f"Expected text, got {type(value).__name__}")


def _register_item(args) -> RegisterOne:
    if not isinstance(args, dict):
        raise MalformedOperationError(f"Transaction must be an object, got {type(args).__name__}")

    amount = args.get("amount")
    if isinstance(amount, bool):
        raise MalformedOperationError("amount must be a number")
    if isinstance(amount, (int, float)):
        amount = abs(Decimal(str(amount)))

    item = RegisterOne(
        amount=amount,
        kind=args.get("type"),
        category=_text(args.get("category")),
        description=_text(args.get("description")),
        date=_parse_day(args.get("date")),
    )
    if not item.category:
        item.category = infer_category(item.description, item.kind)
    return item


def _query(args: dict) -> Query:
    comparison = None
    if any(
        args.get(key)
        for key in (
            "comparison_period",
            "comparison_start_date",
            "comparison_end_date",
            "comparison_specific_day",
        )
    ):
        comparison = Comparison(
            period=args.get("comparison_period") or "custom",
            start_date=_parse_day(args.get("comparison_start_date")),
            end_date=_parse_day(args.get("comparison_end_date")),
            specific_day=_parse_day(args.get("comparison_specific_day")),
        )

    return Query(
        period=args.get("period"),
        kind=args.get("type"),
        category=_text(args.get("category")) or None,
        start_date=_parse_day(args.get("start_date")),
        end_date=_parse_day(args.get("end_date")),
        specific_day=_parse_day(args.get("specific_day")),
        comparison=comparison,
    )


def decode_operation(name: str, arguments_json: str) -> Operation:
    """Build the typed operation for a tool call made by the model."""
    try:
        args = json.loads(arguments_json or "{}")
    except json.JSONDecodeError as e:
        raise MalformedOperationError(f"Invalid JSON arguments for {name}: {e}") from e
    if not isinstance(args, dict):
        raise MalformedOperationError(f"Arguments for {name} must be an object")

    try:
        if name == "register_transaction":
            return _register_item(args)
        if name == "register_multiple_transactions":
            items = args.get("transactions")
            if not isinstance(items, list):
                raise MalformedOperationError("'transactions' must be a list")
            return RegisterMany(items=[_register_item(item) for item in items])
        if name == "query_finances":
            return _query(args)
    except (ValidationError, TypeError, InvalidOperation) as e:
        raise MalformedOperationError(f"Invalid arguments for {name}: {e}") from e

    raise MalformedOperationError(f"Unknown operation: {name}")


def _merge(operations: list[Operation]) -> Operation:
    """Several register calls in one reply become a single RegisterMany.

    When registrations and queries are mixed, the registrations win and the
    ignored queries are logged.
    """
    if len(operations) == 1:
        return operations[0]
    items: list[RegisterOne] = []
    queries: list[Query] = []
    for op in operations:
        if isinstance(op, RegisterOne):
            items.append(op)
        elif isinstance(op, RegisterMany):
            items.extend(op.items)
        else:
            queries.append(op)

    if not items:
        if len(queries) > 1:
            logger.warning("Model made {} queries at once, answering the first", len(queries))
        return queries[0]
    if queries:
        logger.warning(
            "Ignoring {} query call(s) mixed with {} registration(s)", len(queries), len(items)
        )
    if len(items) == 1:
        return items[0]
    return RegisterMany(items=items)


class IntentResolver:
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        client=None,
    ):
        self.client = client or OpenAI(base_url=base_url, api_key=api_key)
        self.model = model

    def resolve(
        self,
        utterance: str,
        context: list[dict] | None,
        user: UserContext,
        now: datetime,
    ) -> Operation | FreeTextReply:
        messages = [{"role": "system", "content": build_system_prompt(user, now)}]
        if context:
            messages.extend(context)
        messages.append({"role": "user", "content": utterance})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=TOOLS,
                tool_choice="auto",
                temperature=0.1,
            )
        except OpenAIError as e:
            logger.error("LLM request failed: {}", e)
            return FreeTextReply(text=LLM_FAILURE)

        message = response.choices[0].message
        tool_calls = message.tool_calls or []

        if tool_calls:
            operations = []
            for call in tool_calls:
                logger.debug("LLM tool call: {}({})", call.function.name, call.function.arguments)
                try:
                    operations.append(
                        decode_operation(call.function.name, call.function.arguments)
                    )
                except MalformedOperationError as e:
                    logger.error("Failed to decode tool call: {}", e)
                    return FreeTextReply(text=COULD_NOT_PROCESS)
            return _merge(operations)

        raw = (message.content or "").strip()
        logger.debug("LLM raw response: {}", raw)
        return FreeTextReply(text=raw or COULD_NOT_UNDERSTAND)

    def summarize(self, conversations: str, previous: str | None = None) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "user", "content": build_summary_prompt(conversations, previous)}
            ],
            temperature=0.3,
            max_tokens=300,
        )
        return (response.choices[0].message.content or "").strip()
