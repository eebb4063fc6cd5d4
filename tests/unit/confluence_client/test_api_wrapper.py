"""Unit tests for api_wrapper module."""

import json

import pytest
from unittest.mock import Mock, patch
from requests.exceptions import HTTPError, Timeout

from src.confluence_client.api_wrapper import (
    PAGE_SIZE,
    APIWrapper,
    cover_property_value,
)
from src.confluence_client.errors import (
    InvalidCredentialsError,
    PageNotFoundError,
    SpaceNotFoundError,
    APIUnreachableError,
    APIAccessError,
)


def create_mock_auth():
    """Create a mock authenticator with standard credentials."""
    mock_auth = Mock()
    mock_creds = Mock()
    mock_creds.url = 'https://test.atlassian.net/wiki'
    mock_creds.user = 'test@example.com'
    mock_creds.api_token = 'token123'
    mock_creds.hostname = 'test.atlassian.net'
    mock_auth.get_credentials.return_value = mock_creds
    return mock_auth


def http_error(status_code):
    error = HTTPError()
    error.response = Mock()
    error.response.status_code = status_code
    return error


def make_wrapper(mock_confluence):
    mock_client = Mock()
    mock_confluence.return_value = mock_client
    return APIWrapper(create_mock_auth()), mock_client


class TestAPIWrapper:
    """Test cases for client creation and error translation."""

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_init_lazy_loads_client(self, mock_confluence):
        """__init__ should not create client until first use."""
        mock_auth = Mock()
        APIWrapper(mock_auth)

        mock_auth.get_credentials.assert_not_called()
        mock_confluence.assert_not_called()

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_client_created_once_with_credentials(self, mock_confluence):
        """The client should be built from the credentials and reused."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.return_value = {'accountId': 'acc-1'}

        wrapper.get_current_user()
        wrapper.get_current_user()

        mock_confluence.assert_called_once_with(
            url='https://test.atlassian.net/wiki',
            username='test@example.com',
            password='token123',
            cloud=True,
            timeout=30,
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_401_raises_invalid_credentials(self, mock_confluence):
        """A 401 response should raise InvalidCredentialsError."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.side_effect = http_error(401)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            wrapper.get_current_user()

        assert exc_info.value.user == 'test@example.com'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_404_raises_page_not_found_with_id(self, mock_confluence):
        """A 404 response should raise PageNotFoundError naming the page."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.side_effect = http_error(404)

        with pytest.raises(PageNotFoundError) as exc_info:
            wrapper.get_content_state('123')

        assert exc_info.value.page_id == '123'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_timeout_raises_api_unreachable(self, mock_confluence):
        """A request timeout should raise APIUnreachableError."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.side_effect = Timeout("timed out")

        with pytest.raises(APIUnreachableError) as exc_info:
            wrapper.get_current_user()

        assert exc_info.value.endpoint == 'https://test.atlassian.net/wiki'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_other_errors_are_sanitized(self, mock_confluence):
        """Unknown errors should become APIAccessError without leaking tokens."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get_attachments_from_content.side_effect = Exception("boom token=secret123")

        with pytest.raises(APIAccessError) as exc_info:
            wrapper.get_attachments('123')

        assert 'secret123' not in str(exc_info.value)
        assert exc_info.value.operation == 'get_attachments(123)'

    @patch('time.sleep')
    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_rate_limit_is_retried(self, mock_confluence, mock_sleep):
        """A 429 response should be retried before succeeding."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.side_effect = [http_error(429), {'accountId': 'acc-1'}]

        assert wrapper.get_current_user() == {'accountId': 'acc-1'}
        assert client.get.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_invalid_page_id_rejected(self, mock_confluence):
        """Non-numeric page ids should be rejected before any request."""
        wrapper, client = make_wrapper(mock_confluence)

        with pytest.raises(ValueError):
            wrapper.archive_page("123' OR '1'='1")

        client.post.assert_not_called()


class TestQueries:
    """Test cases for space, user and page queries."""

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_get_space_not_found(self, mock_confluence):
        """get_space should raise SpaceNotFoundError for an unknown key."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get_space.side_effect = http_error(404)

        with pytest.raises(SpaceNotFoundError) as exc_info:
            wrapper.get_space('NOPE')

        assert exc_info.value.space_key == 'NOPE'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_search_user_returns_first_account(self, mock_confluence):
        """search_user should return the account id of the first match."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.return_value = {'results': [{'user': {'accountId': 'acc-1'}}]}

        assert wrapper.search_user('Ada Lovelace') == 'acc-1'
        client.get.assert_called_once_with(
            'rest/api/search/user', params={'cql': 'user.fullname~"Ada Lovelace"'}
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_search_user_no_match(self, mock_confluence):
        """search_user should return None when nobody matches."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.return_value = {'results': []}

        assert wrapper.search_user('Nobody') is None

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_list_pages_paginates(self, mock_confluence):
        """list_pages should request batches until a short one arrives."""
        wrapper, client = make_wrapper(mock_confluence)
        full = [{'id': str(i)} for i in range(PAGE_SIZE)]
        client.get_all_pages_from_space.side_effect = [full, [{'id': 'last'}]]

        pages = wrapper.list_pages('DOCS', status='archived')

        assert len(pages) == PAGE_SIZE + 1
        starts = [call.kwargs['start'] for call in client.get_all_pages_from_space.call_args_list]
        assert starts == [0, PAGE_SIZE]
        assert client.get_all_pages_from_space.call_args.kwargs['status'] == 'archived'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_list_folders_unwraps_content(self, mock_confluence):
        """list_folders should return the content of each search result."""
        wrapper, client = make_wrapper(mock_confluence)
        client.cql.return_value = {'results': [{'content': {'id': '5', 'title': 'Guides'}}]}

        assert wrapper.list_folders('DOCS') == [{'id': '5', 'title': 'Guides'}]
        assert client.cql.call_args.kwargs['cql'] == 'space = "DOCS" and type = folder'

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_get_content_state(self, mock_confluence):
        """get_content_state should return the state name or None."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.return_value = {'contentState': {'name': 'Verified'}}

        assert wrapper.get_content_state('123') == 'Verified'

        client.get.return_value = {}
        assert wrapper.get_content_state('123') is None


class TestWrites:
    """Test cases for page, folder, metadata and attachment writes."""

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_create_folder_posts_to_v2(self, mock_confluence):
        """create_folder should post to the v2 folders endpoint."""
        wrapper, client = make_wrapper(mock_confluence)
        client.post.return_value = {'id': '77'}

        assert wrapper.create_folder('99', 'Guides', '1') == {'id': '77'}
        client.post.assert_called_once_with(
            'api/v2/folders', data={'spaceId': '99', 'title': 'Guides', 'parentId': '1'}
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_update_page_sets_version_message(self, mock_confluence):
        """update_page should publish with the version message as comment."""
        wrapper, client = make_wrapper(mock_confluence)
        client.update_page.return_value = {'id': '123'}

        wrapper.update_page('123', 'Title', '<p>x</p>', 'updated by mdspace: source=a.md; checksum=ab')

        kwargs = client.update_page.call_args.kwargs
        assert kwargs['version_comment'] == 'updated by mdspace: source=a.md; checksum=ab'
        assert kwargs['representation'] == 'storage'
        assert kwargs['always_update'] is True

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_update_page_conflict(self, mock_confluence):
        """A 409 on update should raise APIAccessError."""
        wrapper, client = make_wrapper(mock_confluence)
        client.update_page.side_effect = http_error(409)

        with pytest.raises(APIAccessError) as exc_info:
            wrapper.update_page('123', 'Title', '<p>x</p>', 'msg')

        assert 'Version conflict' in str(exc_info.value)

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_move_page(self, mock_confluence):
        """move_page should append the page to the new parent's children."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.move_page('123', '456')

        client.put.assert_called_once_with('rest/api/content/123/move/append/456')

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_archive_page(self, mock_confluence):
        """archive_page should post the page id to the archive endpoint."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.archive_page('123')

        client.post.assert_called_once_with(
            'rest/api/content/archive', data={'pages': [{'id': 123}]}
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_restore_page_uses_graphql(self, mock_confluence):
        """restore_page should call the unarchive mutation on the site host."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.restore_page('123')

        args, kwargs = client.post.call_args
        assert args[0] == 'https://test.atlassian.net/cgraphql'
        assert kwargs['absolute'] is True
        assert kwargs['data']['variables'] == {'pageIDs': [123], 'includeChildren': [False]}

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_add_labels(self, mock_confluence):
        """add_labels should post all labels in one request."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.add_labels('123', ['a', 'b'])

        client.post.assert_called_once_with(
            'rest/api/content/123/label',
            data=[{'prefix': 'global', 'name': 'a'}, {'prefix': 'global', 'name': 'b'}],
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_set_property_updates_existing(self, mock_confluence):
        """set_property should bump the version of an existing property."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.return_value = {'key': 'k', 'version': {'number': 3}}

        wrapper.set_property('123', 'k', {'a': 1})

        client.put.assert_called_once_with(
            'rest/api/content/123/property/k',
            data={'key': 'k', 'value': {'a': 1}, 'version': {'number': 4}},
        )
        client.post.assert_not_called()

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_set_property_creates_missing(self, mock_confluence):
        """set_property should create a property that does not exist yet."""
        wrapper, client = make_wrapper(mock_confluence)
        client.get.side_effect = http_error(404)

        wrapper.set_property('123', 'k', 'v')

        client.post.assert_called_once_with(
            'rest/api/content/123/property', data={'key': 'k', 'value': 'v'}
        )

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_delete_missing_property_is_ignored(self, mock_confluence):
        """delete_property should not fail when the property is absent."""
        wrapper, client = make_wrapper(mock_confluence)
        client.delete.side_effect = http_error(404)

        wrapper.delete_property('123', 'k')

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_set_editors(self, mock_confluence):
        """set_editors should restrict updates to the given accounts."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.set_editors('123', ['acc-1'])

        path = client.put.call_args.args[0]
        data = client.put.call_args.kwargs['data']
        assert path == 'rest/api/content/123/restriction'
        users = data['results'][0]['restrictions']['user']['results']
        assert users == [{'type': 'known', 'accountId': 'acc-1'}]

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_set_editors_empty_removes_restriction(self, mock_confluence):
        """An empty editor list should delete the restriction."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.set_editors('123', [])

        client.delete.assert_called_once_with('rest/api/content/123/restriction')

    @patch('src.confluence_client.api_wrapper.Confluence')
    def test_upload_attachment(self, mock_confluence):
        """upload_attachment should attach the bytes under the given name."""
        wrapper, client = make_wrapper(mock_confluence)

        wrapper.upload_attachment('123', 'img_a.png', b'data', 'hash:ab')

        client.attach_content.assert_called_once_with(
            b'data',
            name='img_a.png',
            content_type='application/octet-stream',
            page_id='123',
            comment='hash:ab',
        )

    @patch('src.confluence_client.api_wrapper.requests.get')
    def test_download(self, mock_get):
        """download should return the response body."""
        mock_get.return_value = Mock(content=b'png')

        wrapper = APIWrapper(create_mock_auth())

        assert wrapper.download('https://example.com/a.png') == b'png'
        mock_get.assert_called_once_with('https://example.com/a.png', timeout=30)

    @patch('src.confluence_client.api_wrapper.requests.get')
    def test_download_failure(self, mock_get):
        """download should raise APIAccessError when the fetch fails."""
        mock_get.return_value.raise_for_status.side_effect = http_error(500)

        wrapper = APIWrapper(create_mock_auth())

        with pytest.raises(APIAccessError):
            wrapper.download('https://example.com/a.png')


def test_cover_property_value():
    """The published cover value should be JSON with id and position."""
    assert json.loads(cover_property_value('file-1', 30)) == {'id': 'file-1', 'position': 30}
