"""
Serviço de Email transacional
Envio via SMTP (SSL, porta 465)
"""
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from app.config import settings
from app.core.logger import get_logger
from app.core.validation import escape_html

logger = get_logger(__name__)


class EmailService:
    """Serviço para envio de emails da plataforma"""

    @property
    def is_configured(self) -> bool:
        """Verifica se o serviço de email está configurado (verifica dinamicamente)"""
        return bool(settings.SMTP_USER and settings.SMTP_PASSWORD)

    def enviar_email(
        self,
        destinatario: str,
        assunto: str,
        corpo_html: str,
        corpo_texto: Optional[str] = None
    ) -> bool:
        """
        Envia email via SMTP

        Args:
            destinatario: Email do destinatário
            assunto: Assunto do email
            corpo_html: Corpo do email em HTML
            corpo_texto: Corpo em texto puro (opcional)

        Returns:
            True se enviado com sucesso
        """
        smtp_user = settings.SMTP_USER
        email_from = settings.EMAIL_FROM or smtp_user

        if not self.is_configured:
            logger.warning(f"[EMAIL] Serviço não configurado - email para {destinatario} não enviado")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['From'] = email_from
            msg['To'] = destinatario
            msg['Subject'] = assunto

            if corpo_texto:
                msg.attach(MIMEText(corpo_texto, 'plain', 'utf-8'))
            msg.attach(MIMEText(corpo_html, 'html', 'utf-8'))

            logger.info(f"[EMAIL] Conectando a {settings.SMTP_HOST}:{settings.SMTP_PORT}...")
            server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
            try:
                server.login(smtp_user, settings.SMTP_PASSWORD)
                result = server.sendmail(email_from, destinatario, msg.as_string())
            finally:
                server.quit()

            if result:
                logger.warning(f"[EMAIL] Alguns destinatários falharam: {result}")
            else:
                logger.info(f"[EMAIL] Enviado com sucesso para: {destinatario}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"[EMAIL] ERRO de autenticação: {e.smtp_code} - {e.smtp_error}")
            return False
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"[EMAIL] Destinatário recusado: {e.recipients}")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"[EMAIL] ERRO SMTP ({type(e).__name__}): {e}")
            return False
        except OSError as e:
            logger.error(f"[EMAIL] ERRO de conexão ao enviar para {destinatario}: {e}")
            return False

    def _layout(self, titulo: str, conteudo: str, cor: str = "#f97316") -> str:
        """Moldura HTML comum a todos os emails"""
        return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: {cor}; color: white; padding: 24px; text-align: center; border-radius: 10px 10px 0 0; }}
        .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }}
        .button {{ display: inline-block; background: {cor}; color: white; padding: 12px 28px; text-decoration: none; border-radius: 6px; }}
        .destaque {{ background: #fff7ed; border-left: 4px solid {cor}; padding: 15px; margin: 20px 0; }}
        .footer {{ text-align: center; margin-top: 20px; color: #666; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1 style="margin: 0;">{titulo}</h1>
        </div>
        <div class="content">
            {conteudo}
        </div>
        <div class="footer">
            <p>{settings.PROJECT_NAME} - Este é um email automático, não responda.</p>
        </div>
    </div>
</body>
</html>
"""

    def enviar_boas_vindas(self, email: str, nome: Optional[str] = None) -> bool:
        nome = escape_html(nome or "")
        conteudo = f"""
            <p>Olá{f' <strong>{nome}</strong>' if nome else ''},</p>
            <p>Sua conta foi criada com sucesso. Agora você pode solicitar e responder cotações de materiais de construção.</p>
            <p style="text-align: center;"><a class="button" href="{settings.APP_URL}/login">Acessar a plataforma</a></p>
        """
        return self.enviar_email(
            email,
            f"Bem-vindo ao {settings.PROJECT_NAME}!",
            self._layout("Bem-vindo!", conteudo),
            f"Sua conta foi criada. Acesse: {settings.APP_URL}/login"
        )

    def enviar_reset_senha(self, email: str, link: str, nome: Optional[str] = None) -> bool:
        nome = escape_html(nome or "")
        conteudo = f"""
            <p>Olá{f' <strong>{nome}</strong>' if nome else ''},</p>
            <p>Recebemos uma solicitação para redefinir a senha da sua conta.</p>
            <p style="text-align: center;"><a class="button" href="{link}">Redefinir senha</a></p>
            <div class="destaque">
                O link expira em {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutos.
                Se você não fez esta solicitação, ignore este email.
            </div>
        """
        return self.enviar_email(
            email,
            "Recuperação de senha",
            self._layout("Recuperação de senha", conteudo),
            f"Para redefinir sua senha acesse: {link}"
        )

    def enviar_senha_alterada(self, email: str, nome: Optional[str] = None) -> bool:
        nome = escape_html(nome or "")
        conteudo = f"""
            <p>Olá{f' <strong>{nome}</strong>' if nome else ''},</p>
            <p>A senha da sua conta foi alterada com sucesso.</p>
            <div class="destaque">
                Se você não reconhece esta alteração, entre em contato com o suporte imediatamente.
            </div>
        """
        return self.enviar_email(
            email,
            "Sua senha foi alterada",
            self._layout("Senha alterada", conteudo),
            "A senha da sua conta foi alterada."
        )

    def enviar_credenciais(
        self,
        email: str,
        nome: str,
        senha_temporaria: str,
        recadastro: bool = False
    ) -> bool:
        """
        Credenciais de acesso de conta criada pelo admin

        recadastro=True para fornecedores migrados que precisam revisar o cadastro
        """
        nome = escape_html(nome or "")
        acao = "revisar seu cadastro e " if recadastro else ""
        conteudo = f"""
            <p>Olá <strong>{nome}</strong>,</p>
            <p>Uma conta de acesso foi criada para você. Use os dados abaixo para entrar:</p>
            <div class="destaque">
                <p style="margin: 0;"><strong>Email:</strong> {escape_html(email)}</p>
                <p style="margin: 0;"><strong>Senha temporária:</strong> {escape_html(senha_temporaria)}</p>
            </div>
            <p>Por segurança, você deverá {acao}alterar sua senha no primeiro acesso.</p>
            <p style="text-align: center;"><a class="button" href="{settings.APP_URL}/login">Acessar a plataforma</a></p>
        """
        return self.enviar_email(
            email,
            "Recadastro - seus dados de acesso" if recadastro else "Seus dados de acesso",
            self._layout("Dados de acesso", conteudo),
            f"Email: {email}\nSenha temporária: {senha_temporaria}\nAltere sua senha no primeiro acesso: {settings.APP_URL}/login"
        )

    def enviar_confirmacao_pagamento(self, email: str, cotacao_numero: str, valor: Optional[float] = None) -> bool:
        valor_html = f"<p><strong>Valor:</strong> R$ {valor:,.2f}</p>" if valor else ""
        conteudo = f"""
            <p>O pagamento da cotação <strong>{escape_html(cotacao_numero)}</strong> foi aprovado.</p>
            {valor_html}
            <p>Os fornecedores já foram notificados.</p>
        """
        return self.enviar_email(
            email,
            f"Pagamento aprovado - {cotacao_numero}",
            self._layout("Pagamento aprovado", conteudo, cor="#10b981"),
            f"O pagamento da cotação {cotacao_numero} foi aprovado."
        )


# Instância global
email_service = EmailService()
