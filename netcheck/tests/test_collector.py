import pytest
from netcheck.prober.collector import collect_descriptor
from netcheck.shared.errors import ValidationError

ENV = {
    "NODE_IP": "10.0.0.1",
    "POD_IP": "10.244.0.5",
    "POD_NAME": "checker-a",
    "NAMESPACE": "netcheck",
}


def test_collect_descriptor():
    descriptor = collect_descriptor(ENV)
    assert descriptor.agent_name == "checker-a"
    assert descriptor.node_address == "10.0.0.1"
    assert descriptor.agent_address == "10.244.0.5"
    assert descriptor.namespace == "netcheck"
    assert descriptor.observed_at > 0


def test_missing_variables_are_listed():
    env = dict(ENV, POD_IP="")
    del env["NAMESPACE"]
    with pytest.raises(ValidationError) as exc:
        collect_descriptor(env)
    assert "POD_IP" in str(exc.value)
    assert "NAMESPACE" in str(exc.value)
    assert "NODE_IP" not in str(exc.value)
