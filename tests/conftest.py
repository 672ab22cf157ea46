"""Shared test fixtures for layerlint tests."""

import itertools

import pytest

from layerlint.resolution.memory import InMemoryResolver


def sym(class_name, method, calls=(), **kwargs):
    """Index entry for ``class_name.method``."""
    entry = {"class": class_name, "method": method, "calls": list(calls)}
    entry.update(kwargs)
    return entry


CONTROLLER = "com.acme.web.controller.UserController"
SERVICE = "com.acme.service.UserService"
REPOSITORY = "com.acme.repository.UserRepository"
DOMAIN_USER = "com.acme.domain.User"
GATEWAY = "com.acme.gateway.ApiGateway"


@pytest.fixture
def layered_index():
    """Well-layered application: controller -> service -> (repository, domain)."""
    return {
        "symbols": [
            sym(
                CONTROLLER,
                "getUser",
                calls=[f"{SERVICE}.findUser"],
                return_type="User",
                parameters=["Long id"],
                markers=["@GetMapping"],
                class_markers=["@RestController"],
            ),
            sym(
                SERVICE,
                "findUser",
                calls=[
                    f"{REPOSITORY}.findById",
                    f"{DOMAIN_USER}.isActive",
                    "java.util.Objects.requireNonNull",
                ],
                return_type="User",
                parameters=["Long id"],
            ),
            sym(REPOSITORY, "findById", return_type="User", parameters=["Long id"]),
            sym(DOMAIN_USER, "isActive", return_type="boolean"),
            sym("java.util.Objects", "requireNonNull", return_type="Object", parameters=["Object obj"]),
        ]
    }


@pytest.fixture
def layered_resolver(layered_index):
    return InMemoryResolver.from_dict(layered_index)


@pytest.fixture
def leaky_index():
    """Gateway -> controller -> repository: presentation skips application."""
    return {
        "symbols": [
            sym(GATEWAY, "dispatch", calls=[f"{CONTROLLER}.getUser"], parameters=["Request request"]),
            sym(
                CONTROLLER,
                "getUser",
                calls=[f"{REPOSITORY}.findById"],
                return_type="User",
                parameters=["Long id"],
                class_markers=["@RestController"],
            ),
            sym(REPOSITORY, "findById", return_type="User", parameters=["Long id"]),
        ]
    }


@pytest.fixture
def leaky_resolver(leaky_index):
    return InMemoryResolver.from_dict(leaky_index)


@pytest.fixture
def ticking_clock():
    """Clock advancing one second per call, starting at 1000."""
    counter = itertools.count(1000)
    return lambda: float(next(counter))


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def entry():
    """Factory for symbol index entries."""
    return sym
