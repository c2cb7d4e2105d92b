"""Tests for parsing and building the S3 XML documents."""

from cosclient.storage import s3_xml

NS = 'xmlns="http://s3.amazonaws.com/doc/2006-03-01/"'


def test_object_keys_keep_surrounding_whitespace():
    body = (
        f"<ListBucketResult {NS}><IsTruncated>false</IsTruncated>"
        "<Contents><Key> report.csv </Key><Size> 7 </Size></Contents>"
        "<Contents><Key>dir/</Key><Size>0</Size></Contents>"
        "</ListBucketResult>"
    ).encode("utf-8")

    page = s3_xml.parse_object_list(body)

    assert [obj.key for obj in page.objects] == [" report.csv ", "dir/"]
    assert page.objects[0].size == 7


def test_url_encoded_keys_are_decoded():
    body = (
        f"<ListBucketResult {NS}><EncodingType>url</EncodingType>"
        "<NextContinuationToken> next </NextContinuationToken>"
        "<Contents><Key>reports/2020+q1%2B.csv</Key></Contents>"
        "</ListBucketResult>"
    ).encode("utf-8")

    page = s3_xml.parse_object_list(body)

    assert page.objects[0].key == "reports/2020 q1+.csv"
    assert page.next_continuation_token == "next"


def test_unencoded_listing_leaves_percent_signs_alone():
    body = f"<ListBucketResult {NS}><Contents><Key>100%25</Key></Contents></ListBucketResult>".encode("utf-8")

    assert s3_xml.parse_object_list(body).objects[0].key == "100%25"


def test_delete_result_keys_keep_surrounding_whitespace():
    body = (
        b"<DeleteResult><Deleted><Key> a </Key></Deleted>"
        b"<Error><Key>b </Key><Code>AccessDenied</Code><Message>Access Denied</Message></Error></DeleteResult>"
    )

    result = s3_xml.parse_delete_result(body)

    assert result.deleted == (" a ",)
    assert result.errors[0].key == "b "
    assert result.errors[0].code == "AccessDenied"


def test_delete_request_keeps_whitespace_in_keys():
    body = s3_xml.build_delete_request([" report.csv "])

    assert body == b"<Delete><Object><Key> report.csv </Key></Object></Delete>"
