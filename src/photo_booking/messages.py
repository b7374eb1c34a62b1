"""User-facing messages."""

AUTH_REQUIRED = "認証が必要です"
FORBIDDEN = "権限がありません"
UNEXPECTED_ERROR = "予期しないエラーが発生しました"

SESSION_NOT_FOUND = "撮影会が見つかりません"
SESSION_CREATE_FAILED = "撮影会の作成に失敗しました"
SESSION_UPDATE_FAILED = "撮影会の更新に失敗しました"
SLOTS_CREATE_FAILED = "スロットの作成に失敗しました"
SLOTS_UPDATE_FAILED = "スロットの更新に失敗しました"
SLOT_NOT_FOUND = "スロットが見つかりません"
DUPLICATE_SLOT_NUMBER = "スロット番号が重複しています"

BOOKING_FULL = "申し訳ございません。この撮影会は満席です。"
BOOKING_ALREADY_BOOKED = "この撮影会は既に予約済みです。"
BOOKING_SESSION_ENDED = "この撮影会は既に終了しています。"
BOOKING_FAILED = "予約の作成に失敗しました。"
BOOKING_CANCEL_FAILED = "予約のキャンセルに失敗しました。"
SLOT_BOOKING_FAILED = "予約に失敗しました"
SLOT_FULL = "この時間枠は満席です"
SLOT_REQUIRED = "時間枠を選択してください"

UPLOAD_FAILED = "アップロードに失敗しました。"
UPLOAD_TOO_LARGE = "ファイルサイズが大きすぎます。10MB以下にしてください。"
UPLOAD_UNSUPPORTED_TYPE = (
    "サポートされていないファイル形式です。JPEG、PNG、WebP、GIFのみ対応しています。"
)

BOOKING_NOT_FOUND = "Booking not found"
PAYMENT_ALREADY_COMPLETED = "Payment already completed"
PAYMENT_INTENT_FAILED = "Failed to create payment intent"
PAYMENT_RECORD_FAILED = "Failed to create payment record"
PAYMENT_CONFIRM_FAILED = "Failed to confirm payment"
PAYMENT_NOT_FOUND = "Payment not found"
PAYMENT_NO_INTENT = "No Stripe payment intent found"
REFUND_FAILED = "Failed to process refund"
CARD_DECLINED = "カード決済に失敗しました"
CARD_REQUIRES_ACTION = "カードの追加認証が必要です"
CHECKOUT_CONFIRM_PENDING = "決済は完了しましたが、予約の確定処理が保留中です"
PAYMENT_SESSION_MISMATCH = "Booking does not belong to this photo session"
PAYMENT_AMOUNT_MISMATCH = "Amount does not match the booking price"
INVALID_MULTI_SLOT_DISCOUNT = "複数枠割引の設定が正しくありません"
