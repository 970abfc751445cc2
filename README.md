# rkube

`rkube` is a library for a small Kubernetes-style cluster. It provides:

- **Resource models** (`rkube.objects`): pods, replica sets, services, ingresses,
  horizontal pod autoscalers, GPU jobs, functions, workflows, nodes and bindings.
  Each converts to and from plain dictionaries (`to_dict` / `from_dict`) in the
  JSON/YAML shape the API server uses.
- **API envelopes and watch events** (`rkube.models`): `Response`, `ErrResponse`,
  `PutEvent`, `DeleteEvent` and `parse_watch_event`.
- **Configuration** (`rkube.config`): `ClusterConfig` and `KubeletConfig` with
  their defaults.
- **Service NAT rules** (`rkube.proxy.iptables`): `K8sIpTables` turns services
  into `KUBE-SERVICES`, `KUBE-LB-*` and `KUBE-EP-*` chains that load-balance a
  cluster IP across its endpoints.
- **A pod exec session** (`rkube.ctl.exec`): it connects the terminal to a
  command running in a pod container over WebSocket.

## Installation

```
pip install .
```

Python 3.10 or later is required. The only runtime dependency is `websockets`.

## Labels

```python
from rkube.objects.base import Labels

labels = Labels.parse("app=frontend,env=prod")
labels.matches(Labels.parse("app=frontend"))   # True
str(Labels().insert("app", "frontend"))         # "app=frontend"
```

`Labels.parse` raises `ValueError` when an entry has no value, for example
`"key1=value1,key2"`.

## Objects

`rkube.objects.kinds.parse_object` decodes a dictionary whose `kind` field names
its type. `object_to_dict` encodes an object with that field. Every object has a
kind, a name, an API prefix and a URI:

```python
from rkube.objects.kinds import parse_object, object_to_dict

pod = parse_object({
    "kind": "Pod",
    "metadata": {"name": "nginx"},
    "spec": {"containers": [{"name": "web", "image": "nginx:latest"}]},
    "status": None,
})
pod.uri()                                        # "/api/v1/pods/nginx"
pod.spec.containers[0].resolved_pull_policy()    # ImagePullPolicy.ALWAYS
object_to_dict(pod)["kind"]                      # "Pod"
```

An unknown kind or a missing required field raises `ValueError`.

Other helpers include `Pod.is_ready`, `Pod.container_pairs`,
`ResourceRequirements.cpu_shares`, `Node.is_ready`, `HPAScalingRules.longest_period`
and `ChoiceRule.match_with`. `ReplicaSet.from_function`, `PodTemplateSpec.from_function`,
`HorizontalPodAutoscaler.from_function` and `Service.from_function` build the
objects that serve a function. `str()` of a `Pod`, `ReplicaSet` or `Node` gives a
readable description.

## Watch events

```python
from rkube.models import parse_watch_event
from rkube.objects.kinds import parse_object

event = parse_watch_event('{"type": "Delete", "key": "/api/v1/pods/nginx"}')
event.key   # "/api/v1/pods/nginx"
```

A `Put` event's object is passed through the optional `parse_object` callable.

## Service NAT rules

`K8sIpTables` works against any backend that offers the `IpTablesBackend`
operations: `list_chains`, `new_chain`, `delete_chain`, `flush_chain`, `exists`,
`insert`, `append`, `append_unique` and `delete`. `MemoryIpTables` is an
in-memory rule table and the default backend:

```python
from ipaddress import IPv4Address
from rkube.proxy.iptables import K8sIpTables, MemoryIpTables

tables = MemoryIpTables()
proxy = K8sIpTables(tables)
proxy.new_svc("web", IPv4Address("172.16.0.1"))
proxy.add_svc_port("web", 80, 8080)
proxy.add_svc_ep("web", IPv4Address("10.5.28.2"))
tables.rules("nat", "KUBE-SERVICES")
proxy.del_svc("web")
```

When it is created, `K8sIpTables` runs `cleanup`. This installs the portal rules
in `PREROUTING` and `OUTPUT`, empties `KUBE-SERVICES` and removes every
`KUBE-LB-*` and `KUBE-EP-*` chain. `add_svc` applies a whole `Service`, and a
service without a cluster IP raises `ValueError`. When an operation refers to a
service that does not exist, it logs a warning and does nothing. A failing
backend operation raises `IpTablesError`.

## Exec session

```python
import asyncio
from rkube.ctl.exec import exec_url, run_exec

exec_url("http://127.0.0.1:8080/", "nginx", "web", "/bin/sh")
# "ws://127.0.0.1:8080/api/v1/pods/nginx/containers/web/exec?command=/bin/sh"

asyncio.run(run_exec("http://127.0.0.1:8080/", "nginx", "web", "/bin/sh"))
```

`run_exec` sends standard input one byte at a time and writes the binary output
to standard output. When standard output is a POSIX terminal, it puts the
terminal in raw mode. Ctrl-D closes the session.

## What the package does not do

- It has no command-line program. Apart from the exec session, it makes no
  requests to the API server: there is nothing to create, get, describe, patch
  or delete resources, or to fetch logs.
- It has no informer or service-proxy daemon that lists and watches the API
  server. Applying services to the rule tables is left to the caller.
- It does not change the system's real iptables. `MemoryIpTables` is the only
  backend included. A backend that runs real commands must be supplied by the
  caller.

## Running the tests

```
pip install ".[test]"
pytest
```