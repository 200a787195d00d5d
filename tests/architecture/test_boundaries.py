from pytest_archon import archrule


def test_core_has_no_broker_imports() -> None:
    """
    The core (envelope, registry, bus, polling) is broker-agnostic.
    It must not import any broker adapter or broker SDK.
    """
    (
        archrule("core_is_broker_agnostic")
        .match("toto_pubsub.envelope")
        .match("toto_pubsub.serialization")
        .match("toto_pubsub.registry")
        .match("toto_pubsub.bus")
        .match("toto_pubsub.polling")
        .match("toto_pubsub.ports")
        .should_not_import("toto_pubsub.sqs*")
        .should_not_import("toto_pubsub.pubsub*")
        .should_not_import("toto_pubsub.devq*")
        .should_not_import("aiobotocore*")
        .should_not_import("google.cloud*")
        .should_not_import("httpx*")
        .check("toto_pubsub")
    )


def test_primitives_isolation() -> None:
    """
    Exceptions and config are the lowest level.
    They must not import the bus, the poller or any adapter.
    """
    (
        archrule("primitives_isolation")
        .match("toto_pubsub.exceptions")
        .match("toto_pubsub.config")
        .should_not_import("toto_pubsub.bus")
        .should_not_import("toto_pubsub.polling")
        .should_not_import("toto_pubsub.registry")
        .should_not_import("toto_pubsub.memory*")
        .check("toto_pubsub")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("toto_pubsub.ports")
        .should_not_import("toto_pubsub.memory*")
        .should_not_import("toto_pubsub.sqs*")
        .should_not_import("toto_pubsub.pubsub*")
        .should_not_import("toto_pubsub.devq*")
        .check("toto_pubsub")
    )


def test_adapters_are_independent() -> None:
    """
    Broker adapters never import one another.
    """
    for adapter, others in {
        "sqs": ("pubsub", "devq", "memory"),
        "pubsub": ("sqs", "devq", "memory"),
        "devq": ("sqs", "pubsub", "memory"),
    }.items():
        rule = archrule(f"{adapter}_independence").match(f"toto_pubsub.{adapter}*")
        for other in others:
            rule = rule.should_not_import(f"toto_pubsub.{other}*")
        rule.check("toto_pubsub")
