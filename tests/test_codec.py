"""
Brief: Tests for dnscache.codec query encoding and reply parsing.

Inputs:
  - None

Outputs:
  - None
"""

import pytest
from dnslib import QTYPE, DNSRecord

from dnscache.codec import encode_query, parse_response
from dnscache.errors import EmptyAnswer, EncodingError, ParseError
from dnscache.records import QType, Record
from dnsutil import make_reply


@pytest.mark.parametrize("qtype,rrtype", [(QType.A, QTYPE.A), (QType.AAAA, QTYPE.AAAA)])
def test_encode_query_header_and_question(qtype, rrtype):
    """
    Brief: Queries use id 0, RD set, class IN and the requested type.

    Inputs:
      - qtype: QType.A / QType.AAAA

    Outputs:
      - None: Asserts decoded query fields
    """
    wire = encode_query("example.com", qtype)
    q = DNSRecord.parse(wire)
    assert q.header.id == 0
    assert q.header.rd == 1
    assert q.header.qr == 0
    assert len(q.questions) == 1
    assert str(q.q.qname) == "example.com."
    assert q.q.qtype == rrtype
    assert q.q.qclass == 1


@pytest.mark.parametrize(
    "name",
    ["", "   ", "a" * 64 + ".com", ".".join(["abcdefghij"] * 24) + ".com", "bad..name"],
)
def test_encode_query_rejects_malformed_names(name):
    """
    Brief: Empty names, long labels, long names and empty labels are EncodingError.

    Inputs:
      - name: malformed question

    Outputs:
      - None: Asserts EncodingError raised
    """
    with pytest.raises(EncodingError) as exc:
        encode_query(name, QType.A)
    assert "invalid question" in str(exc.value)


def test_parse_single_a_record():
    """
    Brief: A reply with one A answer yields one dotted-quad record.

    Inputs:
      - reply with 93.184.216.34 ttl 60

    Outputs:
      - None: Asserts parsed records
    """
    wire = make_reply("example.com", [("A", "93.184.216.34", 60)])
    answer = parse_response(wire, "example.com", QType.A)
    assert answer.records == (Record("93.184.216.34", 60),)
    assert answer.truncated is False


@pytest.mark.parametrize("ttl", [2**31, 2**32 - 1])
def test_parse_ttl_with_high_bit_set_reads_as_zero(ttl):
    """
    Brief: TTLs with the most significant bit set are treated as 0.

    Inputs:
      - ttl: 2**31 or 2**32 - 1

    Outputs:
      - None: Asserts ttl 0 while the largest positive TTL passes through
    """
    wire = make_reply(
        "example.com", [("A", "10.0.0.1", ttl), ("A", "10.0.0.2", 2**31 - 1)]
    )
    answer = parse_response(wire, "example.com", QType.A)
    assert answer.records == (
        Record("10.0.0.1", 0),
        Record("10.0.0.2", 2**31 - 1),
    )


def test_parse_aaaa_uses_compressed_form():
    """
    Brief: AAAA addresses render in compressed colon-hex.

    Inputs:
      - reply with 2001:db8:0:0:0:0:0:1

    Outputs:
      - None: Asserts '2001:db8::1'
    """
    wire = make_reply("example.com", [("AAAA", "2001:db8:0:0:0:0:0:1", 300)], qtype="AAAA")
    answer = parse_response(wire, "example.com", QType.AAAA)
    assert answer.records == (Record("2001:db8::1", 300),)


def test_parse_skips_other_types_and_keeps_order():
    """
    Brief: CNAME and AAAA answers are skipped for an A lookup.

    Inputs:
      - CNAME, A, AAAA, A answers

    Outputs:
      - None: Asserts only A records in order
    """
    wire = make_reply(
        "www.example.com",
        [
            ("CNAME", "example.com.", 300),
            ("A", "10.0.0.2", 30),
            ("AAAA", "2001:db8::2", 30),
            ("A", "10.0.0.1", 20),
        ],
    )
    answer = parse_response(wire, "www.example.com", QType.A)
    assert [r.address for r in answer.records] == ["10.0.0.2", "10.0.0.1"]
    assert [r.ttl for r in answer.records] == [30, 20]


def test_parse_caps_records_and_reports_truncation():
    """
    Brief: More matching answers than max_records are cut and flagged.

    Inputs:
      - 5 A answers, max_records 3

    Outputs:
      - None: Asserts 3 records and truncated True
    """
    wire = make_reply("big.example", [("A", f"10.0.0.{i}", 60) for i in range(1, 6)])
    answer = parse_response(wire, "big.example", QType.A, max_records=3)
    assert [r.address for r in answer.records] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]
    assert answer.truncated is True


def test_parse_empty_answer_is_distinct():
    """
    Brief: A well-formed reply without matching records raises EmptyAnswer.

    Inputs:
      - reply with only an AAAA answer, requested A

    Outputs:
      - None: Asserts EmptyAnswer (not ParseError)
    """
    wire = make_reply("example.com", [("AAAA", "2001:db8::1", 60)])
    with pytest.raises(EmptyAnswer) as exc:
        parse_response(wire, "example.com", QType.A)
    assert not isinstance(exc.value, ParseError)
    assert "no ip returned" in str(exc.value)


def test_parse_no_answers_is_empty():
    """
    Brief: A reply with zero answers raises EmptyAnswer.
    """
    wire = make_reply("nothing.example", [])
    with pytest.raises(EmptyAnswer):
        parse_response(wire, "nothing.example", QType.A)


@pytest.mark.parametrize(
    "wire",
    [
        b"",
        b"\x00\x01",
        # header claiming one answer with no body
        b"\x00\x00\x81\x80\x00\x00\x00\x01\x00\x00\x00\x00",
    ],
)
def test_parse_corrupt_reply_raises_parse_error(wire):
    """
    Brief: Undecodable bytes raise ParseError carrying a reason.

    Inputs:
      - wire: truncated/garbage reply

    Outputs:
      - None: Asserts ParseError with non-empty reason
    """
    with pytest.raises(ParseError) as exc:
        parse_response(wire, "example.com", QType.A)
    assert exc.value.reason
    assert "query failed" in str(exc.value)
    assert "no ip returned" not in str(exc.value)
