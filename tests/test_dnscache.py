import dns.message
import dns.rrset

from mobiletrojan.dnscache import DnsItem, is_blocked, message_key


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class Recorder:
    def __init__(self):
        self.sent = []

    def __call__(self, data, address):
        self.sent.append((dns.message.from_wire(data), address))


def make_query():
    return dns.message.make_query("www.example.com", "A")


def make_response(ttl=300):
    response = dns.message.make_response(make_query())
    response.answer.append(
        dns.rrset.from_text("www.example.com.", ttl, "IN", "A", "192.0.2.1")
    )
    response.additional.append(
        dns.rrset.from_text("ns.example.com.", ttl, "IN", "A", "192.0.2.53")
    )
    response.authority.append(
        dns.rrset.from_text("example.com.", ttl, "IN", "NS", "ns.example.com.")
    )
    return response


def test_is_blocked_matches_parent_domains():
    blocked = {"google.com"}
    assert is_blocked(blocked, "www.google.com")
    assert is_blocked(blocked, "www.google.com.")
    assert is_blocked(blocked, "google.com")
    assert not is_blocked(blocked, "notgoogle.com")
    assert not is_blocked(blocked, "example.org")


def test_is_blocked_never_matches_top_level_alone():
    assert not is_blocked({"com"}, "google.com")
    assert not is_blocked({"com"}, "com")
    assert not is_blocked({""}, "")


def test_message_key():
    assert message_key(make_query()) == "www.example.com.|A"
    assert message_key(make_response()) == message_key(make_query())


def test_respond_without_answer_queues_client():
    item = DnsItem(make_query())
    send = Recorder()
    assert not item.has_response()
    assert item.respond(send, ("10.0.0.2", 5353), 7)
    assert send.sent == []
    assert item.clients == [(("10.0.0.2", 5353), 7)]


def test_notify_answers_each_client_with_its_id():
    clock = Clock(100.0)
    item = DnsItem(make_query(), clock=clock)
    item.add_client("a", 11)
    item.add_client("b", 22)
    send = Recorder()
    item.notify(make_response(), send)
    assert [(m.id, addr) for m, addr in send.sent] == [(11, "a"), (22, "b")]
    for message, _ in send.sent:
        assert message.additional == []
        assert message.authority == []
        assert message.answer[0][0].address == "192.0.2.1"
    assert item.clients == []
    assert item.has_response()
    assert item.expire == 100.0 + 300


def test_respond_from_cache_counts_down_ttl():
    clock = Clock(100.0)
    item = DnsItem(make_query(), clock=clock)
    item.add_client("a", 1)
    item.notify(make_response(300), Recorder())
    clock.now = 250.0
    send = Recorder()
    assert item.respond(send, "b", 42) is False
    message, address = send.sent[0]
    assert address == "b"
    assert message.id == 42
    assert message.answer[0].ttl == 150
    assert item.clients == []


def test_respond_after_expiry_asks_for_renewal():
    clock = Clock(100.0)
    item = DnsItem(make_query(), clock=clock)
    item.add_client("a", 1)
    item.notify(make_response(30), Recorder())
    clock.now = 1000.0
    send = Recorder()
    assert item.respond(send, "c", 9) is True
    message, _ = send.sent[0]
    assert message.answer[0].ttl == 0
    assert message.id == 9
    assert item.clients == []