from sitechat.ingestion.extractor import RenderedPage, extract_links, extract_main_text

LONG = "The foundation runs education programmes for rural children. " * 6


def test_main_region_preferred_over_body():
    html = f"""
    <html><body>
      <nav>Home About Contact</nav>
      <main><h1>Programmes</h1><p>{LONG}</p></main>
      <footer>Copyright</footer>
    </body></html>
    """
    text = extract_main_text(html)
    assert text.startswith("Programmes The foundation runs")
    assert "Copyright" not in text
    assert "Home About" not in text


def test_short_main_falls_through_to_next_selector():
    html = f"<body><main>tiny</main><article>{LONG}</article></body>"
    assert extract_main_text(html).startswith("The foundation runs")


def test_falls_back_to_body_text():
    html = "<html><body><div>Short page</div><p>with two blocks</p></body></html>"
    assert extract_main_text(html) == "Short page with two blocks"


def test_scripts_and_styles_are_removed():
    html = f"<body><main><script>var x = 1;</script><style>p {{}}</style><p>{LONG}</p></main></body>"
    text = extract_main_text(html)
    assert "var x" not in text
    assert "p {}" not in text


def test_whitespace_is_collapsed():
    html = "<body><p>one\n\n   two</p>\t<p>three</p></body>"
    assert extract_main_text(html) == "one two three"


def test_custom_selectors_and_threshold():
    html = "<body><div id='copy'>Custom region</div><p>other</p></body>"
    assert extract_main_text(html, selectors=["#copy"], min_chars=5) == "Custom region"


def test_invalid_selector_is_skipped():
    html = "<body><div id='copy'>Custom region</div></body>"
    assert extract_main_text(html, selectors=["[[[", "#copy"], min_chars=5) == "Custom region"


def test_empty_html():
    assert extract_main_text("") == ""
    assert extract_links("") == []


def test_extract_links_in_document_order():
    html = """
    <a href="/b">B</a>
    <a>no href</a>
    <a href="  ">blank</a>
    <a href="https://other.org/">Other</a>
    <a href="#frag">Frag</a>
    """
    assert extract_links(html) == ["/b", "https://other.org/", "#frag"]


def test_rendered_page_keeps_requested_and_final_url():
    page = RenderedPage(url="https://example.com/", final_url="https://example.com/home", html="")
    assert page.url != page.final_url
