from httpsource import RequestOptions, generate_key


def test_key_uses_method_and_absolute_url():
    options = RequestOptions(method="get", path="/users/1", base_url="https://api.example.com")

    assert generate_key(options) == "GET:https://api.example.com/users/1"


def test_key_includes_query_parameters():
    options = RequestOptions(
        method="GET", path="/search", base_url="https://api.example.com", query={"q": "cats", "page": 2}
    )

    assert generate_key(options) == "GET:https://api.example.com/search?q=cats&page=2"


def test_key_normalises_host_case():
    first = RequestOptions(method="GET", path="/a", base_url="https://API.Example.com")
    second = RequestOptions(method="GET", path="/a", base_url="https://api.example.com")

    assert generate_key(first) == generate_key(second)


def test_key_differs_by_method():
    get = RequestOptions(method="GET", path="/a", base_url="https://api.example.com")
    head = RequestOptions(method="HEAD", path="/a", base_url="https://api.example.com")

    assert generate_key(get) != generate_key(head)


def test_absolute_path_without_base_url():
    options = RequestOptions(method="GET", path="https://other.example.com/x")

    assert generate_key(options) == "GET:https://other.example.com/x"
