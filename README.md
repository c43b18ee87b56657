# bpcli

`bpcli` is a library for site reliability work on managed OpenShift
clusters that are reached through a backplane API. It covers the pieces
that sit around a login:

- **Kubeconfig handling** (`bpcli.kubeconfig`): loading and writing
  kubeconfig files, temporary kubeconfigs pointed at by `KUBECONFIG`,
  per-cluster kubeconfigs, and the `ElevateContext` that records why
  someone raised their privileges.
- **Cluster lookup** (`bpcli.cluster`): `BackplaneCluster`, worked out from
  the current kubeconfig context or found by cluster key.
- **Elevation** (`bpcli.elevate`): `run_elevate` runs an `oc` command as
  `backplane-cluster-admin` with a recorded reason.
- **Health checks** (`bpcli.healthcheck`): `HealthChecker` checks VPN,
  proxy and backplane API connectivity and reports an exit code.
- **PagerDuty and Jira** (`bpcli.pagerduty`, `bpcli.jira`): finding the
  cluster behind an incident, and looking up OHSS issues.
- **Cluster summaries** (`bpcli.cluster_info`): printing a cluster's basic
  attributes, support status and access protection.
- **Monitoring helpers** (`bpcli.monitoring`): building monitoring URLs,
  rejecting deprecated UIs and preparing proxied requests.
- **Small utilities** (`bpcli.utils`, `bpcli.rendering`, `bpcli.info`):
  parameter parsing, JWT claims, domain matching, free ports, backplane API
  errors, table and JSON output, and version reporting.

It needs Python 3.10 or later and depends on PyYAML, requests and PyJWT.

## Examples

Parsing `key=value` parameters and matching domains:

```python
from bpcli.utils import parse_params_flag, match_base_domain

parse_params_flag(["k1=v1", "k2=v2"])       # {"k1": "v1", "k2": "v2"}
parse_params_flag(["k1=v1", "k1=v2"])       # {"k1": "v2"}
match_base_domain("a.b.c.example.com", "example.com")   # True
match_base_domain("a.example.com.io", "example.com")    # False
```

A parameter without `=` raises `ValueError`.

Finding the cluster ID and backplane host in a cluster URL:

```python
from bpcli.cluster import cluster_id_and_host_from_url

cluster_id_and_host_from_url("https://example.com/backplane/cluster/abcd123")
# ("abcd123", "https://example.com")
```

Recording an elevation reason in the current kubeconfig context and then
running `oc get pods` with it:

```python
from bpcli.elevate import run_elevate

run_elevate(["investigating an incident", "get", "pods"])
```

The reason is kept in the current context for twenty minutes, so later calls
may pass an empty reason. If there is neither a reason nor a recent one
stored, and no terminal to ask on, `ValueError` is raised. The command runs
with a temporary kubeconfig that is removed afterwards, and `KUBECONFIG` is
restored.

Running the connectivity checks:

```python
from bpcli.healthcheck import HealthCheckConfig, HealthChecker

checker = HealthChecker(
    load_config=lambda: HealthCheckConfig(
        proxy_url="http://proxy.example.com:8080",
        proxy_check_endpoint="https://check.example.com",
        vpn_check_endpoint="https://internal.example.com",
    )
)
exit_code = checker.run(check_vpn=True)
```

Looking up the cluster behind a PagerDuty incident:

```python
from bpcli.pagerduty import new_with_token

pd = new_with_token("token")
alert = pd.get_cluster_info_from_incident("incident-id-000")
print(alert.cluster_id, alert.cluster_name)
```

If the incident's alerts point at different clusters,
`bpcli.pagerduty.PagerDutyError` is raised.

Building the URL of a monitoring endpoint from the API host of a backplane
login:

```python
from bpcli.monitoring import backplane_monitoring_url, single_joining_slash

backplane_monitoring_url(
    "https://api.example.com/backplane/cluster/abc123/", "thanos"
)
# "https://api.example.com/backplane/thanos/abc123"
single_joining_slash("/base/", "/path")    # "/base/path"
```

## What the package does not do

- It has no command-line program; everything is called from Python.
- It has no OCM client. Functions that need one, such as
  `backplane_cluster_from_key` and `print_cluster_info`, take an `ocm`
  object that supplies the methods their docstrings name.
- It does not read a backplane configuration file. `HealthChecker` takes a
  `load_config` callable, the backplane API check is a `check_api` callable
  you supply, and `backplane_cluster_from_key` takes the backplane URL or
  reads `BACKPLANE_URL`.
- It does not log in to clusters, and `bpcli.monitoring` prepares proxied
  requests but does not run a proxy server.

## Running the tests

Install the `test` extra and run pytest from the project directory.