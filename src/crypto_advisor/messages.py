"""User-facing error strings (Farsi, as shown by the dashboard)."""

NETWORK_ERROR = "خطایی رخ داده است، مجددا تلاش کنید!"
SERVICE_UNAVAILABLE = "Service temporarily unavailable"

LOGIN_INVALID = "نام کاربری یا رمز عبور نادرست است"
LOGIN_FAILED = "ورود با شکست مواجه شد، مجددا تلاش کنید!"
SIGNUP_FAILED = "پروسه ثبت نام با مشکل مواجه شد، مجددا تلاش کنید!"
VERIFY_EMAIL_FAILED = "تائید ایمیل با شکست مواجه شد!"
VERIFY_EMAIL_SERVER_ERROR = "ارور از سمت سرور"
PROFILE_FAILED = "دریافت حساب کاربری با شکست مواجه شد!"
LOGOUT_FAILED = "خروج با شکست مواجه شد!"
AUTH_STATE_FAILED = "خطا در دریافت وضعیت احراز هویت"
REQUEST_FAILED = "درخواست ناموفق بود"
ADVISOR_FAILED = "متاسفانه خطایی رخ داد. لطفاً دوباره تلاش کنید."

REFRESH_EXHAUSTED = "Token refresh failed or maximum retries reached"
REFRESH_FAILED = "Token refresh failed"
REFRESH_NETWORK_ERROR = "Token refresh failed due to network error"
