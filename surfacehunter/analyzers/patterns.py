"""
Detection corpus.
Every family is an ordered list of tagged rules (name, compiled pattern,
effect). Families are evaluated by the two generic matchers at the bottom
of this module; list order is evaluation priority.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Pattern, Sequence

from surfacehunter.models import HttpMethod, PersistenceOp, UiKind


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: Pattern
    effect: Any = None

    def search(self, text: str):
        return self.pattern.search(text)

    def finditer(self, text: str):
        return self.pattern.finditer(text)


def compile_rules(entries: Iterable[tuple], flags: int = 0) -> List[Rule]:
    rules = []
    for entry in entries:
        name, pattern = entry[0], entry[1]
        effect = entry[2] if len(entry) > 2 else name
        rules.append(Rule(name=name, pattern=re.compile(pattern, flags), effect=effect))
    return rules


# --- URL shapes ------------------------------------------------------------
# Each pattern exposes the candidate as the named group "url".

URL_RULES = compile_rules([
    ('schemed-url', r'(?P<url>(?:https?|wss?)://[^\s"\'`<>\\]+)'),
    ('quoted-path', r'["\'`](?P<url>/[^\s"\'`<>\\]{2,})["\'`]'),
    ('assignment', r'(?i)\b(?:endpoint|url|uri|path|route|api_?url|base_?url)\s*[:=]\s*["\'`](?P<url>[^"\'`\s]+)["\'`]'),
    ('request-annotation', r'@(?:GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS|HTTP|RequestMapping|GetMapping|PostMapping|PutMapping|PatchMapping|DeleteMapping)\s*\(\s*(?:(?:value|path)\s*=\s*)?"(?P<url>[^"]+)"'),
    ('smali-annotation', r'Lretrofit2/http/(?:GET|POST|PUT|PATCH|DELETE|HEAD);\s+value\s*=\s*"(?P<url>[^"]+)"'),
    ('fetch-call', r'\bfetch\s*\(\s*["\'`](?P<url>[^"\'`]+)["\'`]'),
    ('axios-call', r'\baxios(?:\.(?:get|post|put|patch|delete|head|request))?\s*\(\s*["\'`](?P<url>[^"\'`]+)["\'`]'),
    ('jquery-call', r'\$\.(?:ajax|get|post|getJSON)\s*\(\s*["\'`](?P<url>[^"\'`]+)["\'`]'),
    ('new-url', r'\bnew\s+URL\s*\(\s*["\'`](?P<url>[^"\'`]+)["\'`]'),
])


# --- HTTP method cues --------------------------------------------------------
# Blocks run GET, POST, PUT, PATCH, DELETE; first match wins.

_CLIENT = r'\b(?:axios|http|\$http|client|api|request|superagent)\.|\$\.'

METHOD_RULES = compile_rules([
    ('get-verb-token', r'["\']GET["\']', HttpMethod.GET),
    ('get-annotation', r'@GET\b|Lretrofit2/http/GET;', HttpMethod.GET),
    ('get-client-class', r'\bHttpGet\b|Request\.Method\.GET\b|Request\$Method;->GET', HttpMethod.GET),
    ('get-client-call', r'(?:' + _CLIENT + r')get(?:JSON)?\s*\(\s*["\'`]', HttpMethod.GET),
    ('get-method-option', r'(?i)\b(?:method|type)\s*[:=]\s*["\']get["\']', HttpMethod.GET),

    ('post-verb-token', r'["\']POST["\']', HttpMethod.POST),
    ('post-annotation', r'@POST\b|Lretrofit2/http/POST;', HttpMethod.POST),
    ('post-client-class', r'\bHttpPost\b|Request\.Method\.POST\b|Request\$Method;->POST', HttpMethod.POST),
    ('post-client-call', r'(?:' + _CLIENT + r')post\s*\(\s*["\'`]', HttpMethod.POST),
    ('post-method-option', r'(?i)\b(?:method|type)\s*[:=]\s*["\']post["\']', HttpMethod.POST),
    ('post-content-type', r'(?i)application/x-www-form-urlencoded|multipart/form-data', HttpMethod.POST),

    ('put-verb-token', r'["\']PUT["\']', HttpMethod.PUT),
    ('put-annotation', r'@PUT\b|Lretrofit2/http/PUT;', HttpMethod.PUT),
    ('put-client-class', r'\bHttpPut\b|Request\.Method\.PUT\b|Request\$Method;->PUT', HttpMethod.PUT),
    ('put-client-call', r'(?:' + _CLIENT + r')put\s*\(\s*["\'`]', HttpMethod.PUT),
    ('put-method-option', r'(?i)\b(?:method|type)\s*[:=]\s*["\']put["\']', HttpMethod.PUT),

    ('patch-verb-token', r'["\']PATCH["\']', HttpMethod.PATCH),
    ('patch-annotation', r'@PATCH\b|Lretrofit2/http/PATCH;', HttpMethod.PATCH),
    ('patch-client-class', r'\bHttpPatch\b|Request\.Method\.PATCH\b|Request\$Method;->PATCH', HttpMethod.PATCH),
    ('patch-client-call', r'(?:' + _CLIENT + r')patch\s*\(\s*["\'`]', HttpMethod.PATCH),
    ('patch-method-option', r'(?i)\b(?:method|type)\s*[:=]\s*["\']patch["\']', HttpMethod.PATCH),

    ('delete-verb-token', r'["\']DELETE["\']', HttpMethod.DELETE),
    ('delete-annotation', r'@DELETE\b|Lretrofit2/http/DELETE;', HttpMethod.DELETE),
    ('delete-client-class', r'\bHttpDelete\b|Request\.Method\.DELETE\b|Request\$Method;->DELETE', HttpMethod.DELETE),
    ('delete-client-call', r'(?:' + _CLIENT + r')delete\s*\(\s*["\'`]', HttpMethod.DELETE),
    ('delete-method-option', r'(?i)\b(?:method|type)\s*[:=]\s*["\']delete["\']', HttpMethod.DELETE),
])

# URL-path fallbacks, DELETE -> PUT -> POST -> GET.
METHOD_PATH_RULES = compile_rules([
    ('delete-path', r'/(?i:delete|remove|destroy|purge|erase)(?=[/?#._\-A-Z]|$)', HttpMethod.DELETE),
    ('put-path', r'/(?i:update|edit|modify|replace|change)(?=[/?#._\-A-Z]|$)', HttpMethod.PUT),
    ('post-path', r'/(?i:create|add|new|insert|register|signup|submit|upload|login|signin|save)(?=[/?#._\-A-Z]|$)', HttpMethod.POST),
    ('get-path', r'/(?i:get|list|fetch|search|find|view|show|read|detail|details)(?=[/?#._\-A-Z]|$)', HttpMethod.GET),
])

# JSON or form body syntax near a call site implies POST.
BODY_MARKER_RULES = compile_rules([
    ('body-property', r'\bbody\s*:'),
    ('json-stringify', r'JSON\.stringify\s*\('),
    ('form-data', r'\bnew\s+FormData\b'),
    ('body-annotation', r'@Body\b|@Field\b|@Part\b|Lretrofit2/http/Body;'),
    ('request-body', r'\bRequestBody\b'),
    ('data-object', r'\bdata\s*:\s*[{\[]'),
])


# --- Persistence operation cues ---------------------------------------------
# Matched against lowercase(url) + context, in table order.

PERSISTENCE_RULES = compile_rules([
    ('insert-path', r'/(?:create|insert|add|new|register|signup)(?![a-z])', PersistenceOp.INSERT),
    ('insert-query', r'[?&](?:op|action|cmd|method|operation)=(?:create|insert|add|new|register)\b', PersistenceOp.INSERT),
    ('insert-sql', r'\binsert\s+into\b', PersistenceOp.INSERT),

    ('update-path', r'/(?:update|edit|modify|change|patch)(?![a-z])', PersistenceOp.UPDATE),
    ('update-query', r'[?&](?:op|action|cmd|method|operation)=(?:update|edit|modify|change|write|alter)\b', PersistenceOp.UPDATE),
    ('update-sql', r'\bupdate\s+[\w.`"\[\]]+\s+set\b', PersistenceOp.UPDATE),

    ('delete-path', r'/(?:delete|remove|destroy|purge|erase)(?![a-z])', PersistenceOp.DELETE),
    ('delete-query', r'[?&](?:op|action|cmd|method|operation)=(?:delete|remove|destroy)\b', PersistenceOp.DELETE),
    ('delete-sql', r'\bdelete\s+from\b', PersistenceOp.DELETE),

    ('upsert-path', r'/(?:upsert|merge|sync|replace)(?![a-z])', PersistenceOp.UPSERT),
    ('upsert-sql', r'\bon\s+conflict\b|\bon\s+duplicate\s+key\s+update\b|\bmerge\s+into\b|\binsert\s+or\s+replace\b|\breplace\s+into\b', PersistenceOp.UPSERT),

    ('bulk-path', r'/(?:bulk|batch|multi|mass)(?![a-z])', PersistenceOp.BULK),
    ('bulk-call', r'\b(?:bulkwrite|insertmany|updatemany|deletemany|batchupdate|bulkinsert|applybatch)\b', PersistenceOp.BULK),

    ('read-path', r'/(?:get|list|fetch|search|find|view|show|read|query|detail|details)(?![a-z])', PersistenceOp.READ),
    ('read-query', r'[?&](?:op|action|cmd|method|operation)=(?:get|list|read|view|fetch|search)\b', PersistenceOp.READ),
    ('read-sql', r'\bselect\s+[\w*.,\s`"]+?\s+from\b', PersistenceOp.READ),
], re.IGNORECASE)

METHOD_DEFAULT_OPS = {
    HttpMethod.POST: PersistenceOp.INSERT,
    HttpMethod.PUT: PersistenceOp.UPDATE,
    HttpMethod.PATCH: PersistenceOp.UPDATE,
    HttpMethod.DELETE: PersistenceOp.DELETE,
    HttpMethod.GET: PersistenceOp.READ,
}

# /users/42, /orders/7/items
COLLECTION_RESOURCE = re.compile(r'/[a-z][a-z0-9_\-]*s/\d+(?=[/?#]|$)', re.IGNORECASE)
ID_SEGMENT = re.compile(r'/\w+/\d+(?=[/?#]|$)')


# --- Payload indicators ---------------------------------------------------

PAYLOAD_RULES = compile_rules([
    ('identifier', r'(?i)["\']?\b(?:id|uuid|guid|user_?id|account_?id|item_?id|order_?id|product_?id)["\']?\s*[:=]'),
    ('user_data', r'(?i)\b(?:username|user_?name|email|first_?name|last_?name|full_?name|phone(?:_?number)?|address|birth_?date)\b'),
    ('timestamp', r'(?i)\b(?:timestamp|created_?at|updated_?at|modified_?at|date_?time|expires_?at)\b'),
    ('file', r'(?i)["\']?\b(?:file|file_?name|attachment|image|avatar|document|upload)["\']?\s*[:=]|\bnew\s+File\s*\('),
    ('status', r'(?i)["\']?\b(?:status|state|is_?active|enabled|visibility)["\']?\s*[:=]'),
    ('sql', r'(?i)\b(?:select\s+[\w*.,\s]+?\s+from|insert\s+into|update\s+\w+\s+set|delete\s+from)\b'),
    ('json', r'JSON\.stringify\s*\(|(?i:application/json)|\bJSONObject\b|\btoJson\s*\(|@Body\b'),
    ('multipart', r'(?i)multipart/form-data|\bnew\s+FormData\b|@Multipart\b|\bMultipartBody\b|x-www-form-urlencoded|@FormUrlEncoded\b'),
    ('auth', r'(?i)\b(?:authorization|bearer|access_?token|auth_?token|api_?key|jwt)\b'),
    ('password', r'(?i)\b(?:password|passwd|pwd|passcode)\b'),
    ('body', r'\bbody\s*:|\bRequestBody\b'),
])


# --- UI ---------------------------------------------------------------------

UI_ELEMENT_RULES = compile_rules([
    ('android-button', r'<(?:Button|ImageButton|(?:[\w.]+\.)?MaterialButton|(?:[\w.]+\.)?AppCompatButton)\b(?P<attrs>[^>]*)>', UiKind.BUTTON),
    ('html-button', r'<(?i:button)\b(?P<attrs>[^>]*)>', UiKind.BUTTON),
    ('html-input-button', r'<(?i:input)\b(?=[^>]*\btype\s*=\s*["\'](?i:submit|button)["\'])(?P<attrs>[^>]*)>', UiKind.BUTTON),
    ('android-text-field', r'<(?:EditText|(?:[\w.]+\.)?TextInputEditText|AutoCompleteTextView|(?:[\w.]+\.)?AppCompatEditText)\b(?P<attrs>[^>]*)>', UiKind.TEXT_FIELD),
    ('html-text-field', r'<(?:(?i:input)(?![^>]*\btype\s*=\s*["\'](?i:submit|button|image|hidden)["\'])|(?i:textarea))\b(?P<attrs>[^>]*)>', UiKind.TEXT_FIELD),
    ('android-image', r'<(?:ImageView|(?:[\w.]+\.)?AppCompatImageView|(?:[\w.]+\.)?ShapeableImageView)\b(?P<attrs>[^>]*)>', UiKind.IMAGE),
    ('html-image', r'<(?i:img)\b(?P<attrs>[^>]*)>', UiKind.IMAGE),
])

UI_ID_PATTERN = re.compile(r'(?:android:id|\bid|\bname)\s*=\s*["\'](?:@\+?id/)?(?P<value>[^"\']+)["\']')
UI_TEXT_PATTERN = re.compile(r'(?:android:text|android:hint|android:contentDescription|\btext|\bvalue|\bplaceholder|\balt|\btitle)\s*=\s*["\'](?P<value>[^"\']+)["\']')
UI_INNER_TEXT_PATTERN = re.compile(r'^\s*(?P<value>[^<>\s][^<>]{0,59}?)\s*<')

LISTENER_RULES = compile_rules([
    ('click', r'android:onClick\s*=|setOnClickListener\s*\(|\bonclick\s*=|addEventListener\s*\(\s*["\']click["\']|\.click\s*\(|\bonClick\s*[=:({]|OnClickListener'),
    ('longClick', r'setOnLongClickListener|OnLongClickListener|\boncontextmenu\s*='),
    ('touch', r'setOnTouchListener|OnTouchListener|\bontouchstart\s*='),
    ('textChange', r'addTextChangedListener|TextWatcher|\bonchange\s*=|\boninput\s*=|addEventListener\s*\(\s*["\'](?:change|input)["\']'),
    ('submit', r'\bonsubmit\s*=|addEventListener\s*\(\s*["\']submit["\']|setOnEditorActionListener'),
    ('focus', r'setOnFocusChangeListener|\bonfocus\s*=|\bonblur\s*='),
    ('keyboard', r'setOnKeyListener|\bonkey(?:down|up|press)\s*='),
], re.IGNORECASE)

BUTTON_CUE = re.compile(r'button|\bbtn|onclick|\bclick\b', re.IGNORECASE)
BUTTON_TEXT_PATTERN = re.compile(
    r'(?:button|btn)[^"\'\n<>]{0,80}?["\'>](?P<text>[A-Za-z][^"\'<>\n]{0,59})["\'<]',
    re.IGNORECASE
)
INPUT_CUE = re.compile(r'EditText|TextInput|<input\b|<textarea\b|\binput\b|getText\s*\(|\bedit(?:text|able)?\b', re.IGNORECASE)

UI_EVENT_RULES = compile_rules([
    ('click-event', r'onclick|setonclicklistener|["\']click["\']|\.click\s*\(', 'Click'),
    ('submit-event', r'onsubmit|["\']submit["\']|\.submit\s*\(|\btype\s*=\s*["\']submit', 'Submit'),
    ('change-event', r'onchange|textwatcher|addtextchangedlistener|["\'](?:change|input)["\']', 'Change'),
], re.IGNORECASE)


# --- Manifest permissions & third-party libraries ---------------------------

PERMISSION_PATTERN = re.compile(
    r'<uses-permission(?:-sdk-23)?\b[^>]*?android:name\s*=\s*["\'](?P<name>[^"\']+)["\']'
)
BINARY_PERMISSION_PATTERN = re.compile(r'(?P<name>(?:android|com(?:\.[\w]+)+)\.permission\.[A-Z0-9_]+)')

SENSITIVE_PERMISSIONS = [
    'android.permission.INTERNET',
    'android.permission.ACCESS_NETWORK_STATE',
    'android.permission.READ_EXTERNAL_STORAGE',
    'android.permission.WRITE_EXTERNAL_STORAGE',
    'android.permission.CAMERA',
    'android.permission.RECORD_AUDIO',
    'android.permission.ACCESS_FINE_LOCATION',
    'android.permission.READ_CONTACTS',
    'android.permission.WRITE_CONTACTS',
    'android.permission.READ_SMS',
    'android.permission.SEND_SMS',
    'android.permission.RECEIVE_SMS',
]

LIBRARY_RULES = compile_rules([
    ('OkHttp', r'okhttp3[/.]|com[/.]squareup[/.]okhttp'),
    ('Retrofit', r'retrofit2[/.]'),
    ('Volley', r'com[/.]android[/.]volley'),
    ('Gson', r'com[/.]google[/.]gson'),
    ('Jackson', r'com[/.]fasterxml[/.]jackson'),
    ('Moshi', r'com[/.]squareup[/.]moshi'),
    ('Glide', r'com[/.]bumptech[/.]glide'),
    ('Picasso', r'com[/.]squareup[/.]picasso'),
    ('Firebase', r'com[/.]google[/.]firebase'),
    ('Google Play Services', r'com[/.]google[/.]android[/.]gms'),
    ('Facebook SDK', r'com[/.]facebook[/.](?:login|share|core|FacebookSdk)'),
    ('React Native', r'com[/.]facebook[/.]react'),
    ('RxJava', r'io[/.]reactivex'),
    ('Kotlin Coroutines', r'kotlinx[/.]coroutines'),
    ('Dagger', r'dagger[/.](?:hilt|android|internal)'),
    ('Room', r'androidx[/.]room'),
    ('Realm', r'io[/.]realm'),
    ('Apache HttpClient', r'org[/.]apache[/.]http'),
    ('Crashlytics', r'com[/.]crashlytics|firebase[/.]crashlytics'),
    ('Stripe', r'com[/.]stripe[/.]android'),
    ('Apollo GraphQL', r'com[/.]apollographql'),
    ('Flutter', r'io[/.]flutter'),
    ('Axios', r'\baxios\b'),
    ('jQuery', r'\bjQuery\b'),
])


# --- Server-logic categories (tags on a URL) --------------------------------

SERVER_LOGIC_RULES = compile_rules([
    ('db-insert', r'insert|create|add|new|register|signup|submit'),
    ('db-update', r'update|edit|modify|change|patch|save|alter'),
    ('db-delete', r'delete|remove|destroy|drop|clear|purge|erase'),
    ('db-upsert', r'upsert|merge|replace'),
    ('db-bulk', r'bulk|batch|multi|mass'),
    ('db-transaction', r'transaction|commit|rollback'),
    ('db-read', r'read|get|fetch|list|view|show|select|find|search'),
    ('auth', r'login|auth|signin|signup|register|token|jwt|oauth'),
    ('admin', r'admin|manage|control|dashboard|panel'),
    ('upload', r'upload|file|attachment|media|image'),
    ('security', r'csrf|xsrf|captcha|verify|validate'),
    ('workflow', r'approve|reject|publish|activate|enable|process|handle'),
    ('backup', r'backup|export|import|migrate|dump|restore'),
], re.IGNORECASE)


# --- Generic matchers -------------------------------------------------------

def first_match(rules: Sequence[Rule], text: str) -> Optional[Rule]:
    for rule in rules:
        if rule.pattern.search(text):
            return rule
    return None


def all_matches(rules: Sequence[Rule], text: str) -> List[Rule]:
    return [rule for rule in rules if rule.pattern.search(text)]


def extract_context(buffer: str, offset: int, radius: int) -> str:
    start = max(0, offset - radius)
    end = min(len(buffer), offset + radius)
    return buffer[start:end]
