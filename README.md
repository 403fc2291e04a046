# notifykit

notifykit sends a subject and a message to any number of notification
services with one call. Each service holds its own receivers (e-mail
addresses, webhook URLs, chat channels, Bark servers and so on). A central
`Notify` object fans the message out to every service it was given.

## Core ideas

- `notifykit.context.Context` carries a cancellation signal and optional
  key/value pairs through a send. `ctx.cancel()` cancels it, `ctx.check()`
  raises `Cancelled` once it is cancelled, and `ctx.with_value(key, value)`
  returns a derived context whose `value(key)` finds the value. Cancelling a
  parent also cancels contexts derived from it.
- `notifykit.context.Notifier` is the protocol every service follows: a
  `send(ctx, subject, message)` method that raises on failure.
- `notifykit.notify.Notify` holds services and sends to all of them
  concurrently, one thread per service. If any service fails,
  `SendNotificationError` is raised, carrying the first failure as its
  cause. A disabled `Notify` returns without sending anything. Passing
  `None` as the context is allowed; a fresh `Context` is used.

## Sending to several services

```python
from notifykit.context import Context
from notifykit.notify import SendNotificationError, new_with_services
from notifykit.service.mail import Mail
from notifykit.service.webhooks import Service as WebhookService

mail = Mail("alerts@example.com", "smtp.example.com:587")
password = "password"
mail.authenticate_smtp("", "alerts@example.com", password, "smtp.example.com")
mail.add_receivers("ops@example.com", "oncall@example.com")

hooks = WebhookService()
hooks.add_receivers_urls("http://localhost:8080/notify")

notifier = new_with_services(mail, hooks)   # None entries are ignored

try:
    notifier.send(Context(), "Deploy finished", "Version 1.4.2 is live.")
except SendNotificationError as exc:
    print(f"some services failed: {exc}")
```

## Enabling and disabling

Options are plain callables applied to a `Notify` instance; `None` options
are skipped:

```python
from notifykit.notify import disable, enable, new, new_with_options

notifier = new_with_options(disable)   # sends nothing while disabled
notifier.with_options(enable)          # back on
plain = new()                          # enabled, no services
```

`notifykit.notify.default()` returns a shared module-level instance, and the
module-level `send(ctx, subject, message)` sends through it. That instance
starts with no services, so sending through it does nothing until it has
some.

## Cancellation

```python
from notifykit.context import Cancelled, Context

ctx = Context()
ctx.cancel()
try:
    hooks.send(ctx, "subject", "message")
except Cancelled:
    print("send was cancelled")
```

Services that talk to several receivers check the context before each one.

## Services

| Module | Class | Receivers | Error raised |
| --- | --- | --- | --- |
| `notifykit.service.mail` | `Mail` | e-mail addresses; HTML body by default, plain text with `body_format(BodyType.PLAIN_TEXT)` | `MailError` |
| `notifykit.service.webhooks` | `Service` | HTTP endpoints as `Webhook` objects or URLs | `WebhookError` |
| `notifykit.service.bark` | `Service` | Bark server URLs for one device key | `BarkError` |
| `notifykit.service.dingding` | `Service` | the DingTalk robot given by `Config(token, secret)` | `DingTalkError` |
| `notifykit.service.discord` | `Discord` | channel IDs | `DiscordError` |
| `notifykit.service.matrix` | `Matrix` | one Matrix room | `MatrixError` |

Services send to their receivers one after another and stop at the first
receiver that fails, raising an error that names that receiver. Mail sends
one message addressed to all receivers over SMTP, using STARTTLS when the
server offers it.

### Webhooks

A `Webhook` has `url`, `method`, `content_type`, `header` and
`build_payload`. `add_receivers_urls` creates webhooks that POST
`{"message": ..., "subject": ...}` as JSON. The payload is serialized by the
service's `serializer` attribute, a `DefaultMarshaller` that handles
`application/json` and `text/plain`; assign any object with a
`marshal(content_type, payload)` method to change that.

```python
from notifykit.service.webhooks import Service, Webhook

service = Service()
service.add_receivers(Webhook(
    url="http://localhost:8080/notify",
    method="POST",
    content_type="text/plain",
    build_payload=lambda subject, message: f"{subject} - {message}",
))

def log_request(req):
    print("sending to", req.url)

def log_response(req, resp):
    print("got", resp.status_code)

service.pre_send(log_request)
service.post_send(log_response)
```

Pre-send hooks receive the prepared request and may change it; post-send
hooks receive the request and the response. Hooks run in the order they were
registered, and a hook reports failure by raising. A response outside
2xx is an error. `with_client(session)` swaps the `requests.Session` used.

### Other services

```python
from notifykit.service import bark, dingding, discord, matrix

barker = bark.Service("placeholder")                        # https://api.day.app/
barker.add_receivers("bark.example.com")                    # becomes https://bark.example.com/

ding = dingding.Service(dingding.Config(token="token", secret="secret"))

discord_svc = discord.Discord()
discord_svc.authenticate_with_bot_token("token")
discord_svc.add_receivers("channel-one", "channel-two")

room = matrix.Matrix("@bot:example.com", "!room:example.com", "matrix.example.com", "token")
```

Discord, DingTalk and LINE-style chat services put the subject on the first
line and the message below it; Matrix sends only the message.

### Signed AWS calls

`notifykit.service.awsauth.AwsQueryClient` makes Signature Version 4 signed
Query protocol calls to Amazon SES (`"ses"`) or SNS (`"sns"`) and returns the
parsed XML response. Nested mappings and lists in the parameters are
flattened the way the protocol expects. Failures raise `AwsError`, whose
`code` holds the AWS error code when there is one.

```python
from notifykit.service.awsauth import AwsQueryClient

sns = AwsQueryClient("sns", "placeholder", "secret", "eu-west-1")
sns.call("Publish", {
    "TopicArn": "arn:aws:sns:region:number:topicname",
    "Subject": "subject",
    "Message": "message",
})
```

## What this package does not do

- It ships only the services in the table above. There is no ready-made
  Amazon SES or SNS service that follows the `Notifier` protocol;
  `AwsQueryClient` is the building block for writing one.
- It has no command-line program and no server; it is a library.
- It does not retry failed sends or store messages.

## Writing your own service

Any object with a `send(ctx, subject, message)` method can be handed to
`new_with_services`. Raise an exception to report a failure, and call
`ctx.check()` before each receiver so cancellation is honoured.