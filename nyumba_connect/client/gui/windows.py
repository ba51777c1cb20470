"""PyQt window classes for the Nyumba Connect GUI."""
from __future__ import annotations

import html
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, List, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QIcon, QTextOption
from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDialog,
    QFileDialog,
    QFormLayout,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStyle,
    QSystemTrayIcon,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..config import APP_NAME, ICON_UNREAD
from ..errors import NotificationPermissionError, SendError, ValidationError
from ..messenger import PollingMessenger
from ..models import Message
from ..visibility import VisibilityMonitor
from .app import ChatController
from .qt_loop import QtEventLoop
from .styles import (
    ACCENT,
    ACCENT_HOVER,
    BORDER_RADIUS,
    ERROR_TEXT,
    OWN_BUBBLE,
    PADDING,
    PEER_BUBBLE,
    PRIMARY_BG,
    SIDEBAR_BG,
    TEXT_MUTED,
    TEXT_PRIMARY,
)


def format_message_html(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


class ServerConfigDialog(QDialog):
    """Dialog used to collect the server URL on first launch."""

    def __init__(self, parent: QWidget | None = None, prefill: str | None = None):
        super().__init__(parent)
        self.setWindowTitle("Server configuration")
        layout = QFormLayout(self)
        self.url_input = QLineEdit(prefill or "http://127.0.0.1:8000")
        layout.addRow("Server URL", self.url_input)
        btn = QPushButton("Save & connect")
        btn.clicked.connect(self.accept)
        layout.addWidget(btn)

    def server_url(self) -> str:
        return self.url_input.text().strip()


class LoginWindow(QMainWindow):
    """Sign-in window."""

    logged_in = pyqtSignal()

    def __init__(self, controller: ChatController):
        super().__init__()
        self.controller = controller
        self.setWindowTitle(f"{APP_NAME} - Sign in")
        self.resize(480, 240)
        self._ensure_server_url()
        self._build_ui()

    def _ensure_server_url(self) -> None:
        if not self.controller.base_url:
            dialog = ServerConfigDialog(self)
            if dialog.exec() == QDialog.DialogCode.Accepted:
                self.controller.set_base_url(dialog.server_url())
            else:
                self.close()
        else:
            self.controller.set_base_url(self.controller.base_url)

    def _build_ui(self) -> None:
        widget = QWidget()
        layout = QFormLayout(widget)
        self.login_input = QLineEdit()
        self.login_password = QLineEdit()
        self.login_password.setEchoMode(QLineEdit.EchoMode.Password)
        layout.addRow("Login", self.login_input)
        layout.addRow("Password", self.login_password)
        self.login_error = QLabel()
        self.login_error.setStyleSheet(f"color: {ERROR_TEXT}")
        login_btn = QPushButton("Log in")
        login_btn.clicked.connect(self._login)
        layout.addRow(self.login_error)
        layout.addRow(login_btn)
        self.setCentralWidget(widget)

    def _login(self) -> None:
        self.login_error.clear()
        try:
            self.controller.login(self.login_input.text().strip(), self.login_password.text())
        except Exception as exc:  # noqa: BLE001
            self.login_error.setText(str(exc))
            return
        self.logged_in.emit()


class TrayNotifications:
    """System tray balloon messages as the notification backend."""

    def __init__(self, tray: QSystemTrayIcon):
        self.tray = tray

    def request_permission(self) -> bool:
        if not QSystemTrayIcon.isSystemTrayAvailable():
            raise NotificationPermissionError("System tray not available")
        if not QSystemTrayIcon.supportsMessages():
            raise NotificationPermissionError("System tray does not support messages")
        self.tray.show()
        return True

    def notify(self, title: str, body: str) -> None:
        self.tray.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, 5000)


class ResourceLibraryDialog(QDialog):
    """Browse, search, download and (for admins) delete library resources."""

    def __init__(self, controller: ChatController, parent: QWidget | None = None):
        super().__init__(parent)
        self.controller = controller
        self.page = 1
        self.total_pages = 0
        self.resources: List[Dict] = []
        self.setWindowTitle("Resource Library")
        self.resize(640, 480)
        self._build_ui()
        self.refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        search_row = QHBoxLayout()
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search resources...")
        self.sort_input = QComboBox()
        self.sort_input.addItem("Sort by Date", "created_at")
        self.sort_input.addItem("Sort by Title", "title")
        self.sort_input.addItem("Sort by Popularity", "download_count")
        self.order_input = QComboBox()
        self.order_input.addItem("Descending", "DESC")
        self.order_input.addItem("Ascending", "ASC")
        search_btn = QPushButton("Search")
        search_btn.clicked.connect(self._search)
        search_row.addWidget(self.search_input, 2)
        search_row.addWidget(self.sort_input)
        search_row.addWidget(self.order_input)
        search_row.addWidget(search_btn)
        layout.addLayout(search_row)

        self.resource_list = QListWidget()
        layout.addWidget(self.resource_list, 1)

        btn_row = QHBoxLayout()
        self.prev_btn = QPushButton("Previous")
        self.next_btn = QPushButton("Next")
        self.page_label = QLabel()
        self.page_label.setStyleSheet(f"color: {TEXT_MUTED}")
        download_btn = QPushButton("Download")
        btn_row.addWidget(self.prev_btn)
        btn_row.addWidget(self.page_label)
        btn_row.addWidget(self.next_btn)
        btn_row.addStretch()
        btn_row.addWidget(download_btn)
        if self.controller.is_admin:
            delete_btn = QPushButton("Delete")
            delete_btn.clicked.connect(self._delete)
            btn_row.addWidget(delete_btn)
        layout.addLayout(btn_row)

        self.prev_btn.clicked.connect(lambda: self._go_to(self.page - 1))
        self.next_btn.clicked.connect(lambda: self._go_to(self.page + 1))
        download_btn.clicked.connect(self._download)

    def refresh(self) -> None:
        try:
            data = self.controller.list_resources(
                page=self.page,
                search=self.search_input.text().strip(),
                sort=self.sort_input.currentData(),
                order=self.order_input.currentData(),
            )
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Failed to load resources: {exc}")
            return
        self.resources = data["resources"]
        self.total_pages = data["total_pages"]
        self.resource_list.clear()
        for resource in self.resources:
            item = QListWidgetItem(
                f"{resource['title']} ({resource['download_count']} downloads) - {resource['uploader_name']}"
            )
            item.setData(Qt.ItemDataRole.UserRole, resource["id"])
            self.resource_list.addItem(item)
        self.page_label.setText(f"Page {self.page} of {max(self.total_pages, 1)}")
        self.prev_btn.setEnabled(self.page > 1)
        self.next_btn.setEnabled(self.page < self.total_pages)

    def _search(self) -> None:
        self.page = 1
        self.refresh()

    def _go_to(self, page: int) -> None:
        self.page = max(1, page)
        self.refresh()

    def _selected(self) -> Optional[Dict]:
        items = self.resource_list.selectedItems()
        if not items:
            return None
        resource_id = items[0].data(Qt.ItemDataRole.UserRole)
        return next((r for r in self.resources if r["id"] == resource_id), None)

    def _download(self) -> None:
        resource = self._selected()
        if not resource:
            return
        dest = QFileDialog.getExistingDirectory(self, "Save to")
        if not dest:
            return
        try:
            path = self.controller.download_resource(resource, Path(dest))
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Download failed: {exc}")
            return
        QMessageBox.information(self, "Downloaded", f"Saved to {path}")
        self.refresh()

    def _delete(self) -> None:
        resource = self._selected()
        if not resource:
            return
        answer = QMessageBox.question(self, "Delete resource", f"Delete '{resource['title']}'?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        try:
            self.controller.delete_resource(resource["id"])
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Delete failed: {exc}")
            return
        self.refresh()


class MentorshipDialog(QDialog):
    """Students request a mentor; alumni accept or decline pending requests."""

    def __init__(self, controller: ChatController, parent: QWidget | None = None):
        super().__init__(parent)
        self.controller = controller
        self.requests: List[Dict] = []
        self.setWindowTitle("Mentorship")
        self.resize(560, 480)
        self._build_ui()
        self.refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        if self.controller.is_student:
            form_box = QGroupBox("Request a mentor")
            form = QFormLayout(form_box)
            self.alumni_input = QComboBox()
            self.request_input = QTextEdit()
            self.request_input.setFixedHeight(90)
            self.request_input.setPlaceholderText("Explain why you would like this mentor (at least 50 characters)")
            request_btn = QPushButton("Send request")
            request_btn.clicked.connect(self._send_request)
            form.addRow("Alumni", self.alumni_input)
            form.addRow("Message", self.request_input)
            form.addRow(request_btn)
            layout.addWidget(form_box)
            self._load_alumni()

        self.error_label = QLabel()
        self.error_label.setStyleSheet(f"color: {ERROR_TEXT}")
        layout.addWidget(self.error_label)

        layout.addWidget(QLabel("Requests"))
        self.request_list = QListWidget()
        layout.addWidget(self.request_list, 1)

        if self.controller.is_alumni:
            btn_row = QHBoxLayout()
            accept_btn = QPushButton("Accept")
            decline_btn = QPushButton("Decline")
            accept_btn.clicked.connect(lambda: self._respond(True))
            decline_btn.clicked.connect(lambda: self._respond(False))
            btn_row.addStretch()
            btn_row.addWidget(accept_btn)
            btn_row.addWidget(decline_btn)
            layout.addLayout(btn_row)

    def _load_alumni(self) -> None:
        try:
            alumni = self.controller.list_alumni()
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Failed to load alumni: {exc}")
            return
        self.alumni_input.clear()
        for person in alumni:
            self.alumni_input.addItem(person["name"], person["id"])

    def refresh(self) -> None:
        try:
            data = self.controller.list_mentorship_requests()
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Failed to load requests: {exc}")
            return
        self.requests = data["requests"]
        self.request_list.clear()
        for request in self.requests:
            partner = request["alumni_name"] if self.controller.is_student else request["student_name"]
            item = QListWidgetItem(f"{partner} - {request['status']}")
            item.setToolTip(request["message"])
            item.setData(Qt.ItemDataRole.UserRole, request["request_id"])
            self.request_list.addItem(item)

    def _send_request(self) -> None:
        alumni_id = self.alumni_input.currentData()
        if alumni_id is None:
            self.error_label.setText("Please select an alumni mentor.")
            return
        try:
            self.controller.request_mentorship(alumni_id, self.request_input.toPlainText().strip())
        except Exception as exc:  # noqa: BLE001
            self.error_label.setText(str(exc))
            return
        self.error_label.clear()
        self.request_input.clear()
        self.refresh()

    def _respond(self, accept: bool) -> None:
        items = self.request_list.selectedItems()
        if not items:
            return
        try:
            self.controller.respond_to_request(items[0].data(Qt.ItemDataRole.UserRole), accept)
        except Exception as exc:  # noqa: BLE001
            self.error_label.setText(str(exc))
            return
        self.error_label.clear()
        self.refresh()


class MainChatWindow(QMainWindow):
    """Main chat UI with conversation sidebar and message area.

    Also acts as the display layer of the active ``PollingMessenger``.
    """

    logged_out = pyqtSignal()

    def __init__(self, controller: ChatController):
        super().__init__()
        self.controller = controller
        self.loop = QtEventLoop(self)
        self.visibility = VisibilityMonitor(is_foreground=True)
        self.messenger: Optional[PollingMessenger] = None
        self.current_mentorship_id: Optional[int] = None
        self.icons = {
            ICON_UNREAD: self.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxInformation),
        }
        self.default_icon = self.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)
        self.tray = QSystemTrayIcon(self.default_icon, self)
        self.notifications = TrayNotifications(self.tray)
        self.setWindowTitle(APP_NAME)
        self.setWindowIcon(self.default_icon)
        self.resize(1024, 720)
        self._build_ui()
        self.refresh_conversations()
        app = QApplication.instance()
        if app is not None:
            app.applicationStateChanged.connect(self._application_state_changed)

    def _build_ui(self) -> None:
        container = QWidget()
        layout = QHBoxLayout(container)

        sidebar = self._build_sidebar()
        layout.addWidget(sidebar, 1)

        main_area = self._build_main_area()
        layout.addWidget(main_area, 3)

        container.setStyleSheet(
            f"QWidget {{ background: {PRIMARY_BG}; color: {TEXT_PRIMARY}; }}\n"
            f"QLineEdit, QTextEdit {{ background: white; border: 1px solid #d1d5db; border-radius: {BORDER_RADIUS}px; }}\n"
            f"QPushButton {{ background: {ACCENT}; color: white; padding: 6px 12px; border-radius: {BORDER_RADIUS}px; }}\n"
            f"QPushButton:hover {{ background: {ACCENT_HOVER}; }}"
        )
        self.setCentralWidget(container)

    def _build_sidebar(self) -> QWidget:
        widget = QWidget()
        widget.setStyleSheet(f"background: {SIDEBAR_BG}; color: white")
        layout = QVBoxLayout(widget)
        layout.setContentsMargins(PADDING, PADDING, PADDING, PADDING)

        user = self.controller.user or {}
        profile_box = QGroupBox("Profile")
        profile_layout = QVBoxLayout(profile_box)
        profile_layout.addWidget(QLabel(f"{user.get('name', '')}"))
        profile_layout.addWidget(QLabel(f"{user.get('role', '')}"))
        resources_btn = QPushButton("Resource library")
        resources_btn.clicked.connect(self._open_resources)
        mentorship_btn = QPushButton("Mentorship")
        mentorship_btn.clicked.connect(self._open_mentorship)
        logout_btn = QPushButton("Logout")
        logout_btn.clicked.connect(self._logout)
        profile_layout.addWidget(resources_btn)
        if not self.controller.is_admin:
            profile_layout.addWidget(mentorship_btn)
        profile_layout.addWidget(logout_btn)
        layout.addWidget(profile_box)

        refresh_btn = QPushButton("Refresh conversations")
        refresh_btn.clicked.connect(self.refresh_conversations)
        layout.addWidget(refresh_btn)

        self.chat_list = QListWidget()
        self.chat_list.itemSelectionChanged.connect(self._chat_selected)
        layout.addWidget(self.chat_list, 1)
        return widget

    def _build_main_area(self) -> QWidget:
        widget = QWidget()
        grid = QGridLayout(widget)
        self.chat_title = QLabel("Select a conversation")
        self.chat_title.setStyleSheet("font-size: 16px; font-weight: bold")
        grid.addWidget(self.chat_title, 0, 0, 1, 2)

        self.messages_view = QTextEdit()
        self.messages_view.setReadOnly(True)
        self.messages_view.setWordWrapMode(QTextOption.WrapMode.WordWrap)
        grid.addWidget(self.messages_view, 1, 0, 1, 2)

        self.message_input = QTextEdit()
        self.message_input.setFixedHeight(80)
        grid.addWidget(self.message_input, 2, 0)

        self.send_btn = QPushButton("Send")
        self.send_btn.clicked.connect(self._send_message)
        grid.addWidget(self.send_btn, 2, 1)

        self.send_error = QLabel()
        self.send_error.setStyleSheet(f"color: {ERROR_TEXT}")
        grid.addWidget(self.send_error, 3, 0, 1, 2)
        return widget

    def refresh_conversations(self) -> None:
        try:
            conversations = self.controller.list_conversations()
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", f"Failed to load conversations: {exc}")
            return
        self.chat_list.blockSignals(True)
        self.chat_list.clear()
        for conv in conversations:
            label = conv["partner_name"]
            if conv["unread_count"]:
                label = f"{label} ({conv['unread_count']})"
            item = QListWidgetItem(label)
            item.setData(Qt.ItemDataRole.UserRole, conv["mentorship_id"])
            self.chat_list.addItem(item)
            if conv["mentorship_id"] == self.current_mentorship_id:
                item.setSelected(True)
        self.chat_list.blockSignals(False)

    def _chat_selected(self) -> None:
        items = self.chat_list.selectedItems()
        if not items:
            return
        mentorship_id = items[0].data(Qt.ItemDataRole.UserRole)
        if mentorship_id == self.current_mentorship_id:
            return
        self._close_conversation()
        try:
            history, last_id = self.controller.load_history(mentorship_id)
        except Exception as exc:  # noqa: BLE001
            QMessageBox.warning(self, "Error", str(exc))
            return
        self.current_mentorship_id = mentorship_id
        self.chat_title.setText(items[0].text())
        self.messages_view.clear()
        self.send_error.clear()
        for message in history:
            self.append_message(message)
        self.scroll_to_bottom()
        self.messenger = self.controller.open_conversation(
            mentorship_id, last_id, self, self.loop, self.visibility, self.notifications
        )
        self.messenger.start()

    def _close_conversation(self) -> None:
        if self.messenger is not None:
            self.messenger.destroy()
            self.messenger = None
        self.current_mentorship_id = None
        self.send_btn.setEnabled(True)

    # ConversationView

    def append_message(self, message: Message) -> None:
        is_own = message.sender_id == (self.controller.user or {}).get("id")
        align = "right" if is_own else "left"
        bubble_color = OWN_BUBBLE if is_own else PEER_BUBBLE
        who = "you" if is_own else html.escape(message.sender_name)
        ts = message.created_at.strftime("%b %d %H:%M")
        cursor = self.messages_view.textCursor()
        cursor.movePosition(cursor.MoveOperation.End)
        cursor.insertHtml(
            f'<div style="text-align:{align}; margin:6px 0;">'
            f'<span style="display:inline-block; background:{bubble_color}; padding:8px; border-radius:8px;">'
            f"<b>[{ts}] {who}:</b> {format_message_html(message.text)}</span></div><br>"
        )

    def scroll_to_bottom(self) -> None:
        cursor = self.messages_view.textCursor()
        cursor.movePosition(cursor.MoveOperation.End)
        self.messages_view.setTextCursor(cursor)
        self.messages_view.ensureCursorVisible()

    def title(self) -> str:
        return self.windowTitle()

    def set_title(self, title: str) -> None:
        self.setWindowTitle(title)

    def set_icon(self, icon_name: str) -> None:
        icon: QIcon = self.icons.get(icon_name, self.default_icon)
        self.setWindowIcon(icon)
        self.tray.setIcon(icon)

    # Events

    def _application_state_changed(self, state: Qt.ApplicationState) -> None:
        self.visibility.set_foreground(state == Qt.ApplicationState.ApplicationActive and not self.isMinimized())

    def changeEvent(self, event) -> None:  # noqa: N802
        super().changeEvent(event)
        if event.type() == event.Type.WindowStateChange:
            self.visibility.set_foreground(not self.isMinimized())

    def _send_message(self) -> None:
        if self.messenger is None:
            QMessageBox.warning(self, "No conversation", "Select a conversation first")
            return
        self.send_error.clear()
        text = self.message_input.toPlainText()
        try:
            self.messenger.send(text, self.controller.csrf_token or "", self._on_sent)
        except ValidationError as exc:
            self.send_error.setText("\n".join(exc.errors))
            return
        self.send_btn.setEnabled(False)

    def _on_sent(self, future: Future) -> None:
        self.send_btn.setEnabled(True)
        try:
            message = future.result()
        except SendError as exc:
            self.send_error.setText(exc.message)
            return
        self.message_input.clear()
        self.append_message(message)
        self.scroll_to_bottom()

    def _open_resources(self) -> None:
        dialog = ResourceLibraryDialog(self.controller, self)
        dialog.exec()

    def _open_mentorship(self) -> None:
        dialog = MentorshipDialog(self.controller, self)
        dialog.exec()
        self.refresh_conversations()

    def _logout(self) -> None:
        self._close_conversation()
        self.controller.logout()
        self.logged_out.emit()
        self.close()

    def closeEvent(self, event) -> None:  # noqa: N802
        self._close_conversation()
        self.loop.shutdown()
        self.tray.hide()
        super().closeEvent(event)


class ChatApplication:
    """Top-level class wiring windows together."""

    def __init__(self):
        self.app = QApplication.instance() or QApplication([])
        self.controller = ChatController()
        self.login_window = LoginWindow(self.controller)
        self.main_window: Optional[MainChatWindow] = None
        self.login_window.logged_in.connect(self._on_logged_in)

    def _on_logged_in(self) -> None:
        self.main_window = MainChatWindow(self.controller)
        self.main_window.logged_out.connect(self._show_login)
        self.login_window.hide()
        self.main_window.show()

    def _show_login(self) -> None:
        self.login_window.show()
        if self.main_window:
            self.main_window.close()
            self.main_window = None

    def run(self) -> int:
        self.login_window.show()
        return self.app.exec()


__all__ = ["ChatApplication", "LoginWindow", "MainChatWindow", "MentorshipDialog", "ResourceLibraryDialog"]
