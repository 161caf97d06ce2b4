#-------------------------------------------------------------------------
# Copyright (c) Microsoft.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#--------------------------------------------------------------------------
from time import time
from urllib.parse import quote as url_quote
from wsgiref.handlers import format_date_time

from ._constants import (
    X_MS_VERSION,
    _MS_DATE_HEADER,
    _USER_AGENT_STRING,
)

# Reserved characters a generic URI escaper leaves untouched.
_URI_SAFE_CHARS = "!#$&'()*+,/:;=?@[]"


def _escape_uri(uri):
    '''
    Escapes an absolute request URI for use in a request line. quote() also
    escapes '%', so percent signs already present in the URI come out as
    '%25' and are put back.
    '''
    return url_quote(uri, _URI_SAFE_CHARS).replace('%25', '%')


def _get_request_body(request_body):
    '''Converts an object into a request body. None stays None so that the
    request is treated as carrying no content.'''
    if request_body is None:
        return None

    if isinstance(request_body, bytes):
        return request_body

    if isinstance(request_body, str):
        return request_body.encode('utf-8')

    return str(request_body).encode('utf-8')


def _update_request(request):
    ''' add additional headers for storage request. '''
    # if the request carries content, advertise its length.
    if request.body is not None and not request.has_header('Content-Length'):
        request.headers.append(('Content-Length', str(len(request.body))))

    if not request.has_header('x-ms-version'):
        request.headers.append(('x-ms-version', X_MS_VERSION))
    if not request.has_header('User-Agent'):
        request.headers.append(('User-Agent', _USER_AGENT_STRING))


def _add_date_header(request):
    current_time = format_date_time(time())
    request.headers = [(name, value) for name, value in request.headers
                       if name.lower() != _MS_DATE_HEADER]
    request.headers.append((_MS_DATE_HEADER, current_time))
